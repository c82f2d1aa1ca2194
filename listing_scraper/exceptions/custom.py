class FetchError(Exception):
    def __init__(self, message: str, url: str, status_code: int | None = None):
        self.message = message
        self.url = url
        self.status_code = status_code
        super().__init__(message)


class ExtractionError(Exception):
    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class EnhancementError(Exception):
    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class StorageError(Exception):
    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class NotFoundError(Exception):
    def __init__(self, record_id: str):
        self.record_id = record_id
        self.message = f"Property {record_id} not found"
        super().__init__(self.message)


class ValidationError(Exception):
    def __init__(self, message: str):
        self.message = message
        super().__init__(message)
