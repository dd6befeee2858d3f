from .setup import setup_observability
from .metrics import (
    ecomm_checkout_total,
    ecomm_checkout_duration_seconds,
    ecomm_order_transitions_total,
    ecomm_stock_movements_total,
    ecomm_insufficient_stock_total,
    ecomm_notification_failures_total,
    ecomm_open_carts
)
