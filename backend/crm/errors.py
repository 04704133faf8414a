"""
Domain errors raised by the CRM services.

Each error carries the HTTP status the API layer answers with. Messages are
safe to show to the caller; storage details never end up in them.
"""


class CRMError(Exception):
    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(CRMError):
    status_code = 400
    default_message = "Invalid request"


class AuthError(CRMError):
    status_code = 401
    default_message = "Invalid or expired token"


class NotFoundError(CRMError):
    status_code = 404
    default_message = "Not found"


class OrderNotFoundError(NotFoundError):
    def __init__(self, order_id: str):
        self.order_id = order_id
        super().__init__("Order not found")


class ProductNotFoundError(NotFoundError):
    def __init__(self, product_id: str):
        self.product_id = product_id
        super().__init__(f"Product {product_id} not found")


class ConflictError(CRMError):
    status_code = 409
    default_message = "Conflict"


class InsufficientInventoryError(ConflictError):
    def __init__(self, product_name: str, product_id: str | None = None):
        self.product_name = product_name
        self.product_id = product_id
        super().__init__(f"Insufficient inventory for product {product_name}")


class InternalError(CRMError):
    status_code = 500
