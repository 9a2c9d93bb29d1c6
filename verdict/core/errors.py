"""Error taxonomy for ruleset compilation and execution."""

from __future__ import annotations


class VerdictError(Exception):
    """Base class for every error raised by verdict."""


class CompileError(VerdictError):
    """A ruleset or rule was finalized before its preconditions were met."""


class RuleDefinitionError(CompileError):
    """A rule builder was used out of order (no action, already finalized)."""


class ValidationError(VerdictError):
    """A facts or effects validator rejected its input.

    The validator's own exception is available as ``__cause__``.
    """

    def __init__(self, stage: str, message: str):
        self.stage = stage
        super().__init__(f"{stage} validation failed: {message}")


class AsyncActionMisuseError(VerdictError):
    """An asynchronous action reached the synchronous ``run()`` entry point."""

    def __init__(self, rule_id: str):
        self.rule_id = rule_id
        super().__init__(
            f"Rule {rule_id!r} has an async action. Use run_async() instead of run()."
        )


class RuleActionError(VerdictError):
    """A rule action raised. The original exception is ``__cause__``."""

    def __init__(self, rule_id: str, error: BaseException):
        self.rule_id = rule_id
        self.original = error
        super().__init__(f"Action for rule {rule_id!r} failed: {error}")


class OperatorRegistrationError(VerdictError):
    """An operator name was registered twice."""


class OperatorLookupError(VerdictError):
    """An operator name was used without being registered."""


class FieldPathError(VerdictError):
    """A field path does not exist on the declared facts model."""


class RulesetNotFoundError(VerdictError):
    """A registry lookup did not match any ruleset id or name."""


class RuleLoadError(VerdictError):
    """A declarative ruleset document could not be turned into rules."""
