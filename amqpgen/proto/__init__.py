"""Runtime support for generated AMQP method code."""

from .serialization import EPOCH as EPOCH
from .serialization import DecodeError as DecodeError
from .serialization import EncodeError as EncodeError
from .serialization import SerializationError as SerializationError
from .serialization import Table as Table
from .serialization import read_long as read_long
from .serialization import read_longlong as read_longlong
from .serialization import read_longstr as read_longstr
from .serialization import read_octet as read_octet
from .serialization import read_short as read_short
from .serialization import read_shortstr as read_shortstr
from .serialization import read_table as read_table
from .serialization import read_timestamp as read_timestamp
from .serialization import write_long as write_long
from .serialization import write_longlong as write_longlong
from .serialization import write_longstr as write_longstr
from .serialization import write_octet as write_octet
from .serialization import write_short as write_short
from .serialization import write_shortstr as write_shortstr
from .serialization import write_table as write_table
from .serialization import write_timestamp as write_timestamp
from .types import FrameError as FrameError
from .types import Method as Method
from .types import MethodFrame as MethodFrame
from .types import Properties as Properties
