from fastapi import APIRouter

from . import admin

router = APIRouter()

_admin_routers = [
    admin.router,
]

for _router in _admin_routers:
    router.include_router(_router)
