# storefront/domain/errors.py


class OrderIntakeError(Exception):
    """Bazowy blad pipeline'u zamowien, mapowany 1:1 na odpowiedz HTTP."""

    code = "InternalError"
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def as_detail(self) -> dict:
        return {"error": self.code, "message": self.message}


class InvalidInput(OrderIntakeError):
    code = "InvalidInput"
    status_code = 400


class AbuseCheckFailed(OrderIntakeError):
    code = "AbuseCheckFailed"
    status_code = 400


class NotFound(OrderIntakeError):
    code = "NotFound"
    status_code = 404


class InvalidSelection(OrderIntakeError):
    code = "InvalidSelection"
    status_code = 400


class CheckoutExpired(OrderIntakeError):
    code = "Expired"
    status_code = 410


class PartialPersistenceError(OrderIntakeError):
    """
    Zamowienie zostalo zapisane, pozycje nie.
    Wymaga recznej rekonsyliacji, klient dostaje ogolny komunikat.
    """

    code = "PartialPersistenceError"
    status_code = 500

    def __init__(self, order_id, order_number: int):
        super().__init__("Order was created but its items could not be saved")
        self.order_id = order_id
        self.order_number = order_number

    def as_detail(self) -> dict:
        return {"error": self.code, "message": "Internal server error"}


class IntegrationError(Exception):
    """Blad pojedynczego handlera integracji. Nigdy nie wychodzi poza dispatcher."""
