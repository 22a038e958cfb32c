"""Custom exceptions for the sales and credit-ledger engine."""

class PosError(Exception):
    """Base exception for all application errors."""
    code = 'error'

    def __init__(self, message="Ocurrió un error interno", status_code=500, payload=None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload

    def to_dict(self):
        rv = dict(self.payload or ())
        rv['message'] = self.message
        rv['status'] = 'error'
        rv['code'] = self.code
        return rv

class ValidationError(PosError):
    """Malformed command rejected before any mutation."""
    code = 'validation_error'

    def __init__(self, message, payload=None):
        super().__init__(message, 400, payload)

class NotFoundError(PosError):
    """Exception raised when a resource is not found."""
    code = 'not_found'

    def __init__(self, message="Recurso no encontrado", payload=None):
        super().__init__(message, 404, payload)

class ConflictError(PosError):
    """A conditional update lost against concurrent state, or an id was reused."""
    code = 'conflict'

    def __init__(self, message, payload=None):
        super().__init__(message, 409, payload)

class InsufficientStockError(ConflictError):
    """Raised when a stock decrement finds less stock than requested."""
    code = 'insufficient_stock'

    def __init__(self, product_name, required, available=None):
        self.product_name = product_name
        self.required = required
        self.available = available
        if available is None:
            message = f"Stock insuficiente para {product_name}: se requieren {required}"
        else:
            message = f"Stock insuficiente para {product_name}: se requieren {required}, disponible {available}"
        payload = {'product': product_name, 'required': required}
        if available is not None:
            payload['available'] = available
        super().__init__(message, payload)

class PersistenceError(PosError):
    """The store was unreachable or failed; the outcome is unknown to the caller."""
    code = 'persistence_error'

    def __init__(self, message="No se pudo acceder a la base de datos", payload=None):
        super().__init__(message, 503, payload)
