from enum import Enum
from typing import Optional


class StudyGenError(Exception):
    pass


class GenerationAPIError(StudyGenError):
    """Remote generation failure; ``status`` is the HTTP code when known."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class GenerationTransportError(GenerationAPIError):
    pass


class MalformedResponseKind(str, Enum):
    UNPARSEABLE = 'unparseable'
    INVALID_SHAPE = 'invalid_shape'


class MalformedResponseError(StudyGenError):

    def __init__(self, message: str, kind: MalformedResponseKind, raw_text: Optional[str] = None):
        super().__init__(message)
        self.kind = kind
        self.raw_text = raw_text
