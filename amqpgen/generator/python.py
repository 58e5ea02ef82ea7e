"""Python code generator for AMQP specifications."""

import keyword
import logging
from dataclasses import dataclass
from importlib import resources

from jinja2 import Environment, PackageLoader

from .emitter import CODECS, Direction, emit_method, render_operations
from .fieldsets import group_fields
from .resolver import GenerationError
from .types import ProtoClass, ProtoMethod, Specification
from .util import to_camel_case, to_constant_case, to_snake_case

logger = logging.getLogger(__name__)

RUNTIME_FILES = [
    "__init__.py",
    "types.py",
    "serialization.py",
]

# Imported by the generated module from the runtime package
RUNTIME_NAMES = sorted(
    {"EPOCH", "FrameError", "Method", "MethodFrame", "Properties", "Table"}
    | {f"{op}_{codec}" for codec in CODECS.values() for op in ("read", "write")}
)

# Top-level names of the generated module other than constants and method types
MODULE_NAMES = frozenset(
    [
        "dataclass",
        "field",
        "datetime",
        "BinaryIO",
        "ClassVar",
        "PROTOCOL_VERSION",
        "DEFAULT_PORT",
        "parse_method_frame",
        *RUNTIME_NAMES,
    ]
)

# Members of generated method classes, and names their class bodies refer to
MEMBER_NAMES = MODULE_NAMES | {
    "CLASS_ID",
    "METHOD_ID",
    "SYNCHRONOUS",
    "CONTENT",
    "properties",
    "body",
    "get_content",
    "set_content",
    "read",
    "write",
    "wait",
    "id",
    "pack",
    "unpack",
    "bool",
    "int",
    "str",
    "bytes",
    "dict",
}

env = Environment(
    loader=PackageLoader("amqpgen.generator", "templates"),
    trim_blocks=True,
    lstrip_blocks=True,
    keep_trailing_newline=True,
    line_comment_prefix="%%",
    line_statement_prefix="%",
)

template = env.get_template("python.py.j2")

BODY_INDENT = " " * 8


class InvalidName(GenerationError):
    """Raised when a protocol name does not give a usable Python identifier."""


def _invalid(message: str, *location: str) -> InvalidName:
    err = InvalidName(message)
    err.locate(*location)
    return err


def _is_identifier(name: str) -> bool:
    return name.isidentifier() and not keyword.iskeyword(name)


def check_names(spec: Specification) -> None:
    """Reject names that would give a broken or ambiguous generated module.

    Constants and method types share the module namespace with the runtime
    imports. Attributes must be unique within their method and must not
    shadow members of the Method base or names the class body refers to.
    """
    module_names = set(MODULE_NAMES)

    for constant in spec.constants:
        name = to_constant_case(constant.name)
        if not _is_identifier(name):
            raise _invalid(f"constant name '{name}' is not a valid identifier", constant.name)
        if name in module_names:
            raise _invalid(f"constant name '{name}' is already defined", constant.name)
        module_names.add(name)

    for klass in spec.classes:
        for method in klass.methods:
            type_name = to_camel_case(klass.name, method.name)
            if not _is_identifier(type_name):
                raise _invalid(
                    f"type name '{type_name}' is not a valid identifier", klass.name, method.name
                )
            if type_name in module_names:
                raise _invalid(
                    f"type name '{type_name}' is already defined", klass.name, method.name
                )
            module_names.add(type_name)

            attributes: set[str] = set()
            for f in method.fields:
                if f.reserved:
                    continue
                attr = to_snake_case(f.name)
                location = (klass.name, method.name, f.name)
                if not _is_identifier(attr):
                    raise _invalid(f"attribute '{attr}' is not a valid identifier", *location)
                if attr in MEMBER_NAMES:
                    raise _invalid(f"attribute '{attr}' shadows a generated name", *location)
                if attr in attributes:
                    raise _invalid(f"attribute '{attr}' is used by more than one field", *location)
                attributes.add(attr)


@dataclass
class MethodView:
    """Everything the template needs to render one method class."""

    klass: ProtoClass
    method: ProtoMethod
    type_name: str
    attributes: list[str]
    wait: str
    encode: str
    decode: str


@dataclass
class ClassView:
    klass: ProtoClass
    methods: list[MethodView]


def _attributes(klass: ProtoClass, method: ProtoMethod, spec: Specification) -> list[str]:
    """Dataclass attribute declarations, one per non-reserved field."""
    try:
        fieldsets = group_fields(method.fields, spec)
    except GenerationError as err:
        err.locate(klass.name, method.name)
        raise

    decls = []
    for fs in fieldsets:
        for f in fs.fields:
            if f.reserved:
                continue
            decl = f"{to_snake_case(f.name)}: {fs.host.annotation} = {fs.host.default}"
            # Labels may span lines; the comment must not
            label = " ".join((f.label or "").split())
            if label:
                decl += f"  # {label}"
            decls.append(decl)

    if method.content:
        decls.append("properties: Properties = field(default_factory=Properties)")
        decls.append('body: bytes = b""')
    return decls


def _wait(method: ProtoMethod) -> str:
    """Expression for the wait() predicate."""
    has_no_wait = any(
        not f.reserved and to_snake_case(f.name) == "no_wait" for f in method.fields
    )
    if method.synchronous and has_no_wait:
        return "not self.no_wait"
    return str(method.synchronous)


def _method_view(klass: ProtoClass, method: ProtoMethod, spec: Specification) -> MethodView:
    encode = emit_method(klass, method, Direction.ENCODE, spec)
    decode = emit_method(klass, method, Direction.DECODE, spec)
    return MethodView(
        klass=klass,
        method=method,
        type_name=to_camel_case(klass.name, method.name),
        attributes=_attributes(klass, method, spec),
        wait=_wait(method),
        encode=render_operations(encode, BODY_INDENT),
        decode=render_operations(decode, BODY_INDENT),
    )


def render(spec: Specification, runtime_import: str = "amqp_runtime") -> str:
    """Render a protocol specification to Python source code."""
    check_names(spec)

    classes = []
    for klass in spec.classes:
        logger.debug("Rendering class %s (%d)", klass.name, klass.index)
        classes.append(
            ClassView(klass=klass, methods=[_method_view(klass, m, spec) for m in klass.methods])
        )

    return template.render(
        spec=spec,
        classes=classes,
        methods=[m for c in classes for m in c.methods],
        constant_name=to_constant_case,
        runtime_import=runtime_import,
        runtime_names=RUNTIME_NAMES,
    )


def runtime() -> dict[str, str]:
    """Return the Python runtime files as a dict of filename -> content."""
    result: dict[str, str] = {}
    for filename in RUNTIME_FILES:
        content = resources.files("amqpgen.proto").joinpath(filename).read_text(encoding="utf-8")
        result[filename] = content
    return result
