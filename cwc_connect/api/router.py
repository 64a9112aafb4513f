from fastapi import APIRouter

from cwc_connect.api.endpoints import chatbot, employees, health

api_router = APIRouter(prefix="/api")
api_router.include_router(health.router)
api_router.include_router(employees.router)
api_router.include_router(chatbot.router)
