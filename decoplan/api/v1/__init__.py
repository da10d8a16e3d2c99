from .orders import router as orders_router
from .timeslots import router as timeslots_router
from .work_centers import router as work_centers_router

__all__ = ["orders_router", "timeslots_router", "work_centers_router"]
