"""Runtime base types for generated AMQP method classes."""

from dataclasses import dataclass
from datetime import datetime
from io import BytesIO
from typing import BinaryIO, ClassVar, Self

from .serialization import Table, write_short


class FrameError(RuntimeError):
    """Raised when a method frame names an unknown class or method."""


class Method:
    """Base class for generated method types.

    Subclasses are @dataclass decorated and set CLASS_ID, METHOD_ID,
    SYNCHRONOUS and CONTENT. Generated code overrides write() and read().

    Example:
        @dataclass
        class QueueDeclare(Method):
            CLASS_ID: ClassVar[int] = 50
            METHOD_ID: ClassVar[int] = 10
            queue: str = ""
    """

    CLASS_ID: ClassVar[int]
    METHOD_ID: ClassVar[int]
    SYNCHRONOUS: ClassVar[bool] = False
    CONTENT: ClassVar[bool] = False

    def id(self) -> tuple[int, int]:
        """Return the (class id, method id) pair that identifies this method."""
        return self.CLASS_ID, self.METHOD_ID

    def wait(self) -> bool:
        """Whether the sender should wait for a reply. Generated code overrides this."""
        return self.SYNCHRONOUS

    def write(self, w: BinaryIO) -> None:
        """Write the method arguments. Generated code overrides this."""
        raise NotImplementedError("write() must be implemented by generated code")

    def read(self, r: BinaryIO) -> None:
        """Read the method arguments in place. Generated code overrides this."""
        raise NotImplementedError("read() must be implemented by generated code")

    def pack(self) -> bytes:
        """Pack the method arguments to bytes."""
        buf = BytesIO()
        self.write(buf)
        return buf.getvalue()

    @classmethod
    def unpack(cls, data: bytes) -> Self:
        """Unpack method arguments from bytes.

        Trailing bytes after the last argument are ignored.
        """
        instance = cls()
        instance.read(BytesIO(data))
        return instance


@dataclass
class Properties:
    """Content header properties carried alongside content-bearing methods."""

    content_type: str | None = None
    content_encoding: str | None = None
    headers: Table | None = None
    delivery_mode: int | None = None
    priority: int | None = None
    correlation_id: str | None = None
    reply_to: str | None = None
    expiration: str | None = None
    message_id: str | None = None
    timestamp: datetime | None = None
    type: str | None = None
    user_id: str | None = None
    app_id: str | None = None
    cluster_id: str | None = None


@dataclass
class MethodFrame:
    """A decoded method frame payload."""

    channel_id: int
    class_id: int
    method_id: int
    method: Method

    def write(self, w: BinaryIO) -> None:
        """Write the class/method header followed by the method arguments."""
        write_short(w, self.class_id)
        write_short(w, self.method_id)
        self.method.write(w)

    @classmethod
    def of(cls, channel_id: int, method: Method) -> "MethodFrame":
        class_id, method_id = method.id()
        return cls(channel_id=channel_id, class_id=class_id, method_id=method_id, method=method)
