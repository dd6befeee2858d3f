from prometheus_client import Counter, Histogram, Gauge

# Business Metrics
ecomm_checkout_total = Counter(
    "ecomm_checkout_total",
    "Total checkouts processed",
    ["status"] # Labels: 'success', 'failed'
)

ecomm_checkout_duration_seconds = Histogram(
    "ecomm_checkout_duration_seconds",
    "Checkout duration in seconds"
)

ecomm_order_transitions_total = Counter(
    "ecomm_order_transitions_total",
    "Order status transitions applied",
    ["from_status", "to_status"]
)

ecomm_stock_movements_total = Counter(
    "ecomm_stock_movements_total",
    "Stock movements recorded",
    ["type"] # Labels: 'reserved', 'unreserved', 'shipped', 'sale', ...
)

ecomm_insufficient_stock_total = Counter(
    "ecomm_insufficient_stock_total",
    "Reservations rejected for lack of available stock"
)

ecomm_notification_failures_total = Counter(
    "ecomm_notification_failures_total",
    "Order confirmation dispatches that failed",
    ["notifier"]
)

ecomm_open_carts = Gauge(
    "ecomm_open_carts",
    "Carts opened minus carts checked out since process start"
)
