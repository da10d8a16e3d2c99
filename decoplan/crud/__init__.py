from .order import (
    next_display_order_number,
    create_order,
    get_order,
    list_orders,
    list_accounting_orders,
    delete_order,
    upsert_size_table,
    add_print_asset,
)

from .work_center import (
    create_work_center,
    get_work_center,
    list_work_centers,
    update_work_center,
    delete_work_center,
    calendar,
)

from .time_slot import (
    list_missing_parts,
    list_order_time_slots,
)

__all__ = [
    # Order functions
    "next_display_order_number",
    "create_order",
    "get_order",
    "list_orders",
    "list_accounting_orders",
    "delete_order",
    "upsert_size_table",
    "add_print_asset",

    # Work center functions
    "create_work_center",
    "get_work_center",
    "list_work_centers",
    "update_work_center",
    "delete_work_center",
    "calendar",

    # Time slot queries
    "list_missing_parts",
    "list_order_time_slots",
]
