from fastapi import APIRouter

from perfhub.routers import admin, auth, dashboard, employees, feedback, goals, metrics, notifications, realtime

# Routers are aggregated here; main.py only imports this hub.
api_router = APIRouter()

api_router.include_router(auth.router, tags=["Authentication"])
api_router.include_router(employees.router, tags=["Employees"])
api_router.include_router(goals.router, tags=["Goals"])
api_router.include_router(feedback.router, tags=["Feedback"])
api_router.include_router(metrics.router, tags=["Performance Metrics"])
api_router.include_router(notifications.router, tags=["Notifications"])
api_router.include_router(dashboard.router, tags=["Dashboard"])
api_router.include_router(admin.router, tags=["Administration"])
api_router.include_router(realtime.router, tags=["Realtime"])
