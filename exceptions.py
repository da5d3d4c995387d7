class InvalidRequest(ValueError):
    """An inbound event that cannot be acted on (missing fields, bad payload)"""

    def __init__(self, code: str, message: str):
        super().__init__(message)
        self.code = code
        self.message = message
