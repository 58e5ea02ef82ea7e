"""AMQP specification code generator."""

from .emitter import Direction as Direction
from .emitter import Operation as Operation
from .emitter import emit_method as emit_method
from .fieldsets import Fieldset as Fieldset
from .fieldsets import group_fields as group_fields
from .parser import MalformedSpecification as MalformedSpecification
from .parser import parse as parse
from .python import InvalidName as InvalidName
from .resolver import GenerationError as GenerationError
from .resolver import UnknownWireType as UnknownWireType
from .resolver import UnresolvedDomain as UnresolvedDomain
from .resolver import WireType as WireType
from .resolver import resolve as resolve
from .sizes import MethodSizeInfo as MethodSizeInfo
from .sizes import SizeInfo as SizeInfo
from .sizes import SizeKind as SizeKind
from .sizes import calculate_sizes as calculate_sizes
from .types import *
