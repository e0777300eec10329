"""
Main Orchestrator for the ISA Allowance Engine

This module ties together the pure engine (calendar, ledger, calculators,
scoring) with storage and auditing, and defines the end-to-end flows for:
1. Adding a contribution (validate -> check capacity -> save -> audit)
2. Editing, withdrawing and deleting contributions
3. Recording flexibility settings
4. Allowance summaries and consistency scores

DESIGN DECISION: The orchestrator enforces the boundaries:
- No deposit is saved without passing evaluate_deposit against the
  ledger as it is at save time
- Backdated edits are accepted as fact; any year they push over the
  allowance is surfaced through an allowance_exceeded audit event
- Every write is audited

CRITICAL: Every read-modify-write cycle runs under one asyncio.Lock and
reloads the store inside the lock. Two deposits racing each other can
never both be checked against the same stale total.
"""

import asyncio
from collections.abc import Awaitable, Iterable
from datetime import datetime
from decimal import Decimal
from pathlib import Path
from typing import Optional, TypeVar
from uuid import UUID

import structlog
from pydantic import BaseModel, Field

from isa_allowance.allowance import (
    evaluate_deposit,
    lifetime_bonus,
    remaining_allowance,
    remaining_lifetime_allowance,
)
from isa_allowance.audit import AuditLogger, create_correlation_id
from isa_allowance.calendar import (
    UK_TIMEZONE,
    TaxYear,
    available_tax_years,
    current_tax_year,
    tax_year_of,
)
from isa_allowance.config import AllowanceSettings, get_settings
from isa_allowance.ledger import (
    ProviderBreakdown,
    build_flexible_state,
    filter_by_tax_year,
    find_allowance_breaches,
    group_by_type_and_provider,
    total_contributed,
    total_for_type,
)
from isa_allowance.models.contribution import (
    AllowanceBreach,
    Contribution,
    DepositEvaluation,
    ISAType,
)
from isa_allowance.models.violations import PolicyViolation, RuleViolation
from isa_allowance.policy import FlexibilityRegistry
from isa_allowance.scoring import (
    DEFAULT_LEVEL_TABLE,
    ConsistencyScore,
    LevelTable,
    is_level_up,
    score_contributions,
)
from isa_allowance.services.storage import (
    ContributionStoreInterface,
    FlexibilityStoreInterface,
    InMemoryFlexibilityStore,
    JsonContributionStore,
    JsonFlexibilityStore,
    JsonLinesAuditStorage,
    NotFoundError,
    StorageError,
)
from isa_allowance.validation import ContributionValidator, RawAmount
from isa_allowance.workflow import AddContributionWizard


logger = structlog.get_logger(__name__)

ZERO = Decimal("0")

T = TypeVar("T")


# =============================================================================
# RESULT MODELS
# =============================================================================

class ContributionOutcome(BaseModel):
    """
    Result of an add or update.

    `contribution` is set only when the ledger was written.
    """

    correlation_id: UUID
    contribution: Optional[Contribution] = None
    evaluation: Optional[DepositEvaluation] = None
    violations: list[RuleViolation] = Field(default_factory=list)
    breaches: list[AllowanceBreach] = Field(default_factory=list)

    @property
    def saved(self) -> bool:
        return self.contribution is not None

    @property
    def messages(self) -> list[str]:
        return [violation.message for violation in self.violations]


class AllowanceSummary(BaseModel):
    """Where a tax year stands against the allowance."""

    tax_year_label: str
    annual_allowance: Decimal
    total_contributed: Decimal
    remaining: Decimal
    by_type: dict[ISAType, ProviderBreakdown]
    lifetime_contributed: Decimal
    lifetime_remaining: Decimal
    lifetime_bonus: Decimal
    breach: Optional[AllowanceBreach] = None


class ScoreOutcome(BaseModel):
    score: ConsistencyScore
    leveled_up: bool


# =============================================================================
# SERVICE
# =============================================================================

class ContributionService:
    """
    Serialized access to the contribution ledger.

    All methods are async and safe to call concurrently from one event loop.
    """

    def __init__(
        self,
        contribution_store: ContributionStoreInterface,
        flexibility_store: Optional[FlexibilityStoreInterface] = None,
        audit_logger: Optional[AuditLogger] = None,
        settings: Optional[AllowanceSettings] = None,
        levels: LevelTable = DEFAULT_LEVEL_TABLE,
    ):
        self._contributions = contribution_store
        self._flexibility = flexibility_store or InMemoryFlexibilityStore()
        self._audit = audit_logger or AuditLogger()
        self._settings = settings or get_settings().allowance
        self._levels = levels
        self._validator = ContributionValidator(self._settings)
        self._lock = asyncio.Lock()

    # -------------------------------------------------------------------------
    # Storage helpers (audit and re-raise)
    # -------------------------------------------------------------------------

    async def _store_call(
        self,
        operation: str,
        call: Awaitable[T],
        correlation_id: Optional[UUID],
    ) -> T:
        """Await a store operation, auditing any failure before re-raising."""
        try:
            return await call
        except StorageError as e:
            await self._audit.log_storage_error(operation, str(e), correlation_id)
            raise
        except Exception as e:
            await self._audit.log_error(
                error_type=type(e).__name__,
                error_message=str(e),
                details={"operation": operation},
                correlation_id=correlation_id,
            )
            raise

    async def _load_ledger(self, correlation_id: Optional[UUID]) -> list[Contribution]:
        return await self._store_call(
            "load_contributions", self._contributions.load(), correlation_id,
        )

    async def _save_ledger(
        self,
        ledger: list[Contribution],
        correlation_id: UUID,
    ) -> None:
        await self._store_call(
            "save_contributions", self._contributions.save(ledger), correlation_id,
        )

    async def _load_registry(self, correlation_id: Optional[UUID]) -> FlexibilityRegistry:
        return FlexibilityRegistry(await self._store_call(
            "load_flexibility", self._flexibility.load(), correlation_id,
        ))

    async def _save_registry(
        self,
        registry: FlexibilityRegistry,
        correlation_id: UUID,
    ) -> None:
        await self._store_call(
            "save_flexibility", self._flexibility.save(registry.policies), correlation_id,
        )

    async def _reject(
        self,
        violations: list[RuleViolation],
        correlation_id: UUID,
        evaluation: Optional[DepositEvaluation] = None,
    ) -> ContributionOutcome:
        for violation in violations:
            await self._audit.log_rule_violation(violation, correlation_id)
        return ContributionOutcome(
            correlation_id=correlation_id,
            evaluation=evaluation,
            violations=violations,
        )

    async def _audit_breaches(
        self,
        ledger: list[Contribution],
        touched: Iterable[TaxYear],
        correlation_id: UUID,
    ) -> list[AllowanceBreach]:
        """Surface over-allowance years among those the write touched."""
        breaches = []
        for tax_year in {year.start_year: year for year in touched}.values():
            breaches.extend(find_allowance_breaches(
                ledger, self._settings.annual_allowance, tax_year=tax_year,
            ))
        await self._audit.log_allowance_breaches(breaches, correlation_id)
        return breaches

    @staticmethod
    def _find(ledger: list[Contribution], contribution_id: UUID) -> int:
        for index, contribution in enumerate(ledger):
            if contribution.id == contribution_id:
                return index
        raise NotFoundError(f"Contribution not found: {contribution_id}")

    # -------------------------------------------------------------------------
    # Deposits
    # -------------------------------------------------------------------------

    def evaluate(
        self,
        ledger: list[Contribution],
        contribution: Contribution,
        registry: FlexibilityRegistry,
        withdrawals_this_year: Decimal = ZERO,
    ) -> DepositEvaluation:
        """
        Check a new contribution against its tax year's capacity.

        Withdrawals only create replacement allowance when the
        provider/type is recorded as flexible.
        """
        if not registry.is_flexible(contribution.provider, contribution.isa_type):
            withdrawals_this_year = ZERO
        state = build_flexible_state(
            ledger,
            tax_year_of(contribution.date),
            withdrawals_this_year=withdrawals_this_year,
            annual_allowance=self._settings.annual_allowance,
        )
        return evaluate_deposit(state, contribution.amount)

    async def add_contribution(
        self,
        provider: str,
        isa_type: ISAType,
        amount: RawAmount,
        when: Optional[datetime] = None,
        notes: Optional[str] = None,
        account_number: Optional[str] = None,
        withdrawals_this_year: Decimal = ZERO,
        correlation_id: Optional[UUID] = None,
    ) -> ContributionOutcome:
        """
        Validate, capacity-check and save a new contribution.

        Args:
            provider: Provider name as entered
            isa_type: Target ISA type
            amount: Raw amount (string input is accepted)
            when: Attribution date (defaults to now, may be backdated)
            notes: Optional user notes
            account_number: Optional account reference
            withdrawals_this_year: Same-year withdrawals from this
                provider/type, honoured only if it is flexible

        Returns:
            ContributionOutcome. Rule violations are returned, not raised.

        Raises:
            StorageError: If the ledger cannot be read or written.
                Any other store failure is audited as a system error
                and re-raised as is.
        """
        correlation_id = correlation_id or create_correlation_id()

        async with self._lock:
            registry = await self._load_registry(correlation_id)
            return await self._add_locked(
                registry, provider, isa_type, amount, when, notes,
                account_number, withdrawals_this_year, correlation_id,
            )

    async def _add_locked(
        self,
        registry: FlexibilityRegistry,
        provider: str,
        isa_type: ISAType,
        amount: RawAmount,
        when: Optional[datetime],
        notes: Optional[str],
        account_number: Optional[str],
        withdrawals_this_year: Decimal,
        correlation_id: UUID,
    ) -> ContributionOutcome:
        """The add flow proper. The caller must hold the lock."""
        when = when or datetime.now(UK_TIMEZONE)
        ledger = await self._load_ledger(correlation_id)

        result = self._validator.validate(
            ledger, provider, isa_type, amount, when, notes=notes,
        )
        if not result.is_valid:
            return await self._reject(result.violations, correlation_id)

        contribution = result.contribution
        if account_number:
            contribution = contribution.model_copy(
                update={"account_number": account_number.strip()}
            )

        evaluation = self.evaluate(ledger, contribution, registry, withdrawals_this_year)
        if not evaluation.allowed:
            return await self._reject([evaluation.violation], correlation_id, evaluation)

        ledger.append(contribution)
        await self._save_ledger(ledger, correlation_id)

        await self._audit.log_contribution_added(
            contribution,
            correlation_id,
            allocation={
                "to_replacement": str(evaluation.allocated_to_replacement),
                "to_unused": str(evaluation.allocated_to_unused),
            },
        )
        breaches = await self._audit_breaches(
            ledger, [tax_year_of(contribution.date)], correlation_id,
        )

        logger.info(
            "contribution_added",
            contribution_id=str(contribution.id),
            correlation_id=str(correlation_id),
        )
        return ContributionOutcome(
            correlation_id=correlation_id,
            contribution=contribution,
            evaluation=evaluation,
            breaches=breaches,
        )

    async def start_wizard(self, now: Optional[datetime] = None) -> AddContributionWizard:
        """A wizard primed with the stored flexibility settings."""
        return AddContributionWizard(await self._load_registry(None), now=now)

    async def submit_wizard(
        self,
        wizard: AddContributionWizard,
        withdrawals_this_year: Decimal = ZERO,
        correlation_id: Optional[UUID] = None,
    ) -> ContributionOutcome:
        """
        Save what a finished wizard collected.

        A flexibility answer given in the wizard is applied when evaluating
        the deposit, and persisted only if the deposit is saved.
        """
        correlation_id = correlation_id or create_correlation_id()
        contribution = wizard.build_contribution()
        draft = wizard.draft

        async with self._lock:
            registry = await self._load_registry(correlation_id)
            answered = (
                draft.is_flexible is not None
                and registry.needs_confirmation(draft.provider, draft.isa_type)
            )
            if answered:
                violation = registry.set(draft.provider, draft.isa_type, draft.is_flexible)
                if violation:
                    return await self._reject([violation], correlation_id)

            outcome = await self._add_locked(
                registry,
                contribution.provider,
                contribution.isa_type,
                contribution.amount,
                contribution.date,
                contribution.notes,
                contribution.account_number,
                withdrawals_this_year,
                correlation_id,
            )
            if not (outcome.saved and answered):
                return outcome

            await self._save_registry(registry, correlation_id)

        await self._audit.log_flexibility_changed(
            draft.provider, draft.isa_type.value, draft.is_flexible, correlation_id,
        )
        return outcome

    # -------------------------------------------------------------------------
    # Edits
    # -------------------------------------------------------------------------

    async def update_contribution(
        self,
        contribution_id: UUID,
        provider: Optional[str] = None,
        isa_type: Optional[ISAType] = None,
        amount: RawAmount = None,
        when: Optional[datetime] = None,
        notes: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> ContributionOutcome:
        """
        Edit an existing contribution.

        IMPORTANT: Edits are not capacity-checked. A backdated edit that
        pushes a year over the allowance is saved and reported in
        `breaches` (and the audit log), never silently corrected.

        Raises:
            NotFoundError: If no contribution has this id
        """
        correlation_id = correlation_id or create_correlation_id()

        async with self._lock:
            ledger = await self._load_ledger(correlation_id)
            index = self._find(ledger, contribution_id)
            before = ledger[index]

            result = self._validator.validate(
                ledger,
                provider if provider is not None else before.provider,
                isa_type or before.isa_type,
                amount if amount is not None else before.amount,
                when or before.date,
                notes=notes if notes is not None else before.notes,
                exclude_id=contribution_id,
            )
            if not result.is_valid:
                return await self._reject(result.violations, correlation_id)

            edited = result.contribution
            after = before.model_copy(update={
                "provider": edited.provider,
                "isa_type": edited.isa_type,
                "amount": edited.amount,
                "date": edited.date,
                "notes": edited.notes,
            })
            ledger[index] = after
            await self._save_ledger(ledger, correlation_id)

            await self._audit.log_contribution_updated(before, after, correlation_id)
            breaches = await self._audit_breaches(
                ledger,
                [tax_year_of(before.date), tax_year_of(after.date)],
                correlation_id,
            )

        return ContributionOutcome(
            correlation_id=correlation_id,
            contribution=after,
            breaches=breaches,
        )

    async def _set_flag(
        self,
        contribution_id: UUID,
        flag: str,
        correlation_id: Optional[UUID],
    ) -> Contribution:
        correlation_id = correlation_id or create_correlation_id()

        async with self._lock:
            ledger = await self._load_ledger(correlation_id)
            index = self._find(ledger, contribution_id)
            if getattr(ledger[index], flag):
                return ledger[index]

            updated = ledger[index].model_copy(update={flag: True})
            ledger[index] = updated
            await self._save_ledger(ledger, correlation_id)

        if flag == "withdrawn":
            await self._audit.log_contribution_withdrawn(updated, correlation_id)
        else:
            await self._audit.log_contribution_deleted(updated, correlation_id)
        return updated

    async def withdraw_contribution(
        self,
        contribution_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> Contribution:
        """Mark a contribution withdrawn. It stays in the ledger for history."""
        return await self._set_flag(contribution_id, "withdrawn", correlation_id)

    async def delete_contribution(
        self,
        contribution_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> Contribution:
        """Soft-delete a contribution. It stays in the ledger for history."""
        return await self._set_flag(contribution_id, "deleted", correlation_id)

    # -------------------------------------------------------------------------
    # Flexibility
    # -------------------------------------------------------------------------

    async def set_flexibility(
        self,
        provider: str,
        isa_type: ISAType,
        is_flexible: bool,
        correlation_id: Optional[UUID] = None,
    ) -> Optional[PolicyViolation]:
        """Record whether a provider's ISA is flexible. Lifetime is refused."""
        correlation_id = correlation_id or create_correlation_id()

        async with self._lock:
            registry = await self._load_registry(correlation_id)
            violation = registry.set(provider, isa_type, is_flexible)
            if violation:
                await self._audit.log_rule_violation(violation, correlation_id)
                return violation

            await self._save_registry(registry, correlation_id)

        await self._audit.log_flexibility_changed(
            provider, isa_type.value, is_flexible, correlation_id,
        )
        return None

    # -------------------------------------------------------------------------
    # Read-only views
    # -------------------------------------------------------------------------

    def available_tax_years(self, now: Optional[datetime] = None) -> list[TaxYear]:
        """Tax years to offer for selection, newest first, per the history settings."""
        return available_tax_years(
            self._settings.history_years_back,
            self._settings.history_years_forward,
            now=now,
        )

    async def allowance_summary(
        self,
        tax_year: Optional[TaxYear] = None,
        now: Optional[datetime] = None,
    ) -> AllowanceSummary:
        tax_year = tax_year or current_tax_year(now)
        ledger = await self._load_ledger(None)
        in_year = filter_by_tax_year(ledger, tax_year)

        allowance = self._settings.annual_allowance
        contributed = total_contributed(in_year)
        lifetime_total = total_for_type(in_year, ISAType.LIFETIME)
        breaches = find_allowance_breaches(in_year, allowance)

        return AllowanceSummary(
            tax_year_label=tax_year.label,
            annual_allowance=allowance,
            total_contributed=contributed,
            remaining=remaining_allowance(contributed, allowance),
            by_type=group_by_type_and_provider(in_year),
            lifetime_contributed=lifetime_total,
            lifetime_remaining=remaining_lifetime_allowance(
                in_year, tax_year, self._settings.lifetime_annual_limit,
            ),
            lifetime_bonus=lifetime_bonus(
                lifetime_total,
                self._settings.lifetime_bonus_rate,
                self._settings.lifetime_annual_limit,
            ),
            breach=breaches[0] if breaches else None,
        )

    async def score_tax_year(
        self,
        tax_year: Optional[TaxYear] = None,
        previous_level_number: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> ScoreOutcome:
        """
        Score a tax year and detect a level-up.

        Args:
            previous_level_number: The level the caller last persisted for
                this user, or None if there is none yet
        """
        tax_year = tax_year or current_tax_year(now)
        ledger = await self._load_ledger(None)
        score = score_contributions(ledger, tax_year, self._levels)

        leveled_up = is_level_up(previous_level_number, score.level)
        if leveled_up:
            await self._audit.log_level_up(
                tax_year_label=tax_year.label,
                previous_level=previous_level_number,
                new_level=score.level.number,
                level_name=score.level.name,
                score=score.score,
            )

        return ScoreOutcome(score=score, leveled_up=leveled_up)


def create_service(data_dir: Optional[Path] = None) -> ContributionService:
    """
    Factory for a service backed by the local JSON files.

    Args:
        data_dir: Overrides ISA_STORAGE_DATA_DIR

    Returns:
        A ContributionService with JSON stores and a persisted audit log
    """
    storage = get_settings().storage
    if data_dir is not None:
        storage = storage.model_copy(update={"data_dir": Path(data_dir)})

    return ContributionService(
        contribution_store=JsonContributionStore(
            storage.contributions_path, storage.retry_attempts,
        ),
        flexibility_store=JsonFlexibilityStore(
            storage.flexibility_path, storage.retry_attempts,
        ),
        audit_logger=AuditLogger(
            JsonLinesAuditStorage(storage.audit_path, storage.retry_attempts),
        ),
    )
