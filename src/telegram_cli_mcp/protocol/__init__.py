"""Protocol layer: command/response engine, argument escaping, command builders."""

from .engine import FailureReason, ProtocolEngine, Response, ResponseKind
from .commands import Verb, build_command
