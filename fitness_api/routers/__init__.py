from fitness_api.routers import analytics, goals, records, workout_plans, workouts

ROUTERS = (
    workout_plans.router,
    workouts.router,
    goals.router,
    records.router,
    analytics.router,
)
