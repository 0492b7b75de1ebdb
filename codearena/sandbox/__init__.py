"""Polyglot code execution sandbox."""

from codearena.sandbox.executor import CodeExecutor
from codearena.sandbox.models import ExecutionRequest, ExecutionResult, ExecutionStatus
from codearena.sandbox.security import SecurityGate

__all__ = ["CodeExecutor", "ExecutionRequest", "ExecutionResult", "ExecutionStatus", "SecurityGate"]
