"""
Units of work for the service layer.

A unit of work runs the primary mutation, commits it, and only then runs the
post-commit effects registered on its context. Each effect runs on its own:
a failing effect is logged and recorded but never reaches the caller or stops
its siblings.
"""

from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Iterator, List, Optional, Tuple
from uuid import uuid4

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from marketplace.core.logging import get_logger


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TransactionAborted(Exception):
    """
    Raised inside a unit of work to roll it back with a domain failure.

    Carries the failed ServiceResult so the operation boundary can return it
    unchanged.
    """

    def __init__(self, result: Any):
        self.result = result
        super().__init__(getattr(result, "message", None) or "Transaction aborted")


@dataclass
class EffectFailure:
    """A post-commit effect that raised."""

    name: str
    error: Exception


@dataclass
class TransactionContext:
    """State of one outermost unit of work and the effects queued on it."""

    transaction_id: str = field(default_factory=lambda: uuid4().hex)
    started_at: datetime = field(default_factory=_utcnow)
    completed_at: Optional[datetime] = None
    committed: bool = False
    rolled_back: bool = False
    error: Optional[Exception] = None
    savepoints: List[str] = field(default_factory=list)
    effects: List[Tuple[str, Callable[[], Any]]] = field(default_factory=list)
    effects_run: List[str] = field(default_factory=list)
    effect_failures: List[EffectFailure] = field(default_factory=list)

    def after_commit(self, name: str, effect: Callable[[], Any]) -> None:
        """Register a best-effort effect to run once the transaction commits."""
        self.effects.append((name, effect))

    @property
    def duration_ms(self) -> Optional[float]:
        if self.completed_at is None:
            return None
        return (self.completed_at - self.started_at).total_seconds() * 1000


class TransactionManager:
    """
    One per session. Services built for the same session share it, so a
    service calling another joins the caller's unit of work instead of
    committing on its own.
    """

    def __init__(self, db_session: Session):
        self.db = db_session
        self._logger = get_logger(f"{__name__}.{self.__class__.__name__}")
        self._stack: List[TransactionContext] = []

    @property
    def active(self) -> Optional[TransactionContext]:
        return self._stack[0] if self._stack else None

    @contextmanager
    def start(self) -> Iterator[TransactionContext]:
        """
        Start a unit of work, or join the one already running.

        The outermost unit commits on success and rolls back on any exception.
        A joined unit neither commits nor rolls back: effects it registers
        run after the outermost commit.

        Example:
            with transactions.start() as ctx:
                bookings.create(booking)
                ctx.after_commit("notify_provider", lambda: ...)
        """
        if self._stack:
            yield self._stack[0]
            return

        ctx = TransactionContext()
        self._stack.append(ctx)
        try:
            yield ctx
            self._commit(ctx)
        except Exception as exc:
            ctx.error = exc
            if not ctx.rolled_back:
                self._rollback(ctx, exc)
            raise
        finally:
            ctx.completed_at = _utcnow()
            self._stack.remove(ctx)
            self._logger.debug(
                f"Unit of work {ctx.transaction_id} {'committed' if ctx.committed else 'rolled back'}",
                extra={
                    "transaction_id": ctx.transaction_id,
                    "duration_ms": ctx.duration_ms,
                    "savepoints": len(ctx.savepoints),
                    "effects": len(ctx.effects),
                },
            )

        self._run_effects(ctx)

    @contextmanager
    def savepoint(self, name: Optional[str] = None) -> Iterator[str]:
        """
        Isolate one step of a unit of work.

        An exception inside the block rolls back to the savepoint and
        propagates; the enclosing unit stays usable.
        """
        label = name or f"sp_{uuid4().hex[:8]}"
        if self._stack:
            self._stack[0].savepoints.append(label)

        try:
            with self.db.begin_nested():
                yield label
        except Exception as exc:
            self._logger.warning(
                f"Step {label} undone: {exc}",
                extra={"savepoint": label, "error_type": type(exc).__name__},
            )
            raise

    def _commit(self, ctx: TransactionContext) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self._logger.error(
                f"Commit of {ctx.transaction_id} failed: {e}",
                exc_info=True,
                extra={"transaction_id": ctx.transaction_id},
            )
            self._rollback(ctx, e)
            raise
        ctx.committed = True

    def _rollback(self, ctx: TransactionContext, exc: Exception) -> None:
        try:
            self.db.rollback()
        except SQLAlchemyError as e:
            self._logger.error(
                f"Rollback of {ctx.transaction_id} failed: {e}",
                exc_info=True,
                extra={"transaction_id": ctx.transaction_id},
            )
            return

        ctx.rolled_back = True
        ctx.effects.clear()
        # An abort carries an expected domain failure
        log = self._logger.debug if isinstance(exc, TransactionAborted) else self._logger.warning
        log(
            f"Unit of work {ctx.transaction_id} rolled back: {exc}",
            extra={"transaction_id": ctx.transaction_id, "error_type": type(exc).__name__},
        )

    # -------------------------------------------------------------------------
    # Post-commit effects
    # -------------------------------------------------------------------------

    def _run_effects(self, ctx: TransactionContext) -> None:
        """
        Run every registered effect; failures are logged and collected.

        An effect that returns a failed ServiceResult counts as failed too.
        """
        while ctx.effects:
            name, effect = ctx.effects.pop(0)
            try:
                outcome = effect()
                if getattr(outcome, "is_success", True) is False:
                    ctx.effect_failures.append(
                        EffectFailure(name=name, error=RuntimeError(outcome.message or "effect failed"))
                    )
                    self._logger.warning(
                        f"Post-commit effect returned a failure: {name}: {outcome.message}",
                        extra={"transaction_id": ctx.transaction_id, "effect": name},
                    )
                    continue
                ctx.effects_run.append(name)
            except Exception as e:
                ctx.effect_failures.append(EffectFailure(name=name, error=e))
                self._logger.error(
                    f"Post-commit effect failed: {name}: {e}",
                    exc_info=True,
                    extra={"transaction_id": ctx.transaction_id, "effect": name},
                )
                if self.db.in_transaction():
                    self.db.rollback()
