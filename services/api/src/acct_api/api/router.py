"""顶层路由注册。"""

from fastapi import APIRouter

from . import health, images, users, verification

api_router = APIRouter()

# 健康检查与邮箱验证不带版本前缀。
api_router.include_router(health.router)
api_router.include_router(verification.router)
api_router.include_router(users.router, prefix="/v1")
api_router.include_router(images.router, prefix="/v1")
