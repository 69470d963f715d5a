from contextvars import ContextVar

_trace_id: ContextVar[str] = ContextVar("trace_id", default="-")
_video_id: ContextVar[str] = ContextVar("video_id", default="-")


def get_trace_id() -> str:
    return _trace_id.get()


def set_trace_id(value: str) -> None:
    _trace_id.set(value)


def get_video_id() -> str:
    return _video_id.get()


def set_video_id(value: str) -> None:
    _video_id.set(value)
