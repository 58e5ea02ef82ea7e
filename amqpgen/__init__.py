"""amqpgen - AMQP method code generator."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("amqpgen")
except PackageNotFoundError:
    __version__ = "(local)"
