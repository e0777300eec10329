"""
Add-Contribution Wizard

A small state machine behind the "add contribution" flow:

    choose_provider -> choose_type -> enter_amount
        -> confirm_flexibility (only when needed) -> done

confirm_flexibility is only visited when the provider/type pair has no
recorded flexibility setting and the type is not a Lifetime ISA.

Each transition validates its own input and returns a RuleViolation
(staying on the current step) or None (advancing). Calling a transition
from the wrong step is a programming error and raises WizardStateError.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from isa_allowance.calendar import UK_TIMEZONE
from isa_allowance.formatting import format_gbp
from isa_allowance.models.contribution import Contribution, ISAType
from isa_allowance.models.violations import InvalidInput, RuleViolation
from isa_allowance.policy import FlexibilityRegistry
from isa_allowance.validation import RawAmount, parse_amount


class WizardStep(str, Enum):
    CHOOSE_PROVIDER = "choose_provider"
    CHOOSE_TYPE = "choose_type"
    ENTER_AMOUNT = "enter_amount"
    CONFIRM_FLEXIBILITY = "confirm_flexibility"
    DONE = "done"


class WizardStateError(RuntimeError):
    """A transition was called from a step that does not allow it."""
    pass


class ContributionDraft:
    """Everything the wizard has collected so far."""

    def __init__(self):
        self.provider: Optional[str] = None
        self.isa_type: Optional[ISAType] = None
        self.amount: Optional[Decimal] = None
        self.date: Optional[datetime] = None
        self.notes: Optional[str] = None
        self.account_number: Optional[str] = None
        self.is_flexible: Optional[bool] = None


class AddContributionWizard:
    """
    Drives the add-contribution flow for one new entry.

    Usage:
        wizard = AddContributionWizard(registry)
        wizard.choose_provider("Monzo")
        wizard.choose_type(ISAType.CASH)
        wizard.enter_amount("1,500")
        if wizard.step == WizardStep.CONFIRM_FLEXIBILITY:
            wizard.confirm_flexibility(True)
        contribution = wizard.build_contribution()
    """

    def __init__(
        self,
        registry: FlexibilityRegistry,
        now: Optional[datetime] = None,
    ):
        self._registry = registry
        self._now = now
        self._history: list[WizardStep] = []
        self.step = WizardStep.CHOOSE_PROVIDER
        self.draft = ContributionDraft()

    def _require(self, step: WizardStep) -> None:
        if self.step != step:
            raise WizardStateError(
                f"Cannot do '{step.value}' while on step '{self.step.value}'"
            )

    def _advance(self, step: WizardStep) -> None:
        self._history.append(self.step)
        self.step = step

    def choose_provider(self, provider: str) -> Optional[RuleViolation]:
        self._require(WizardStep.CHOOSE_PROVIDER)
        if not provider or not provider.strip():
            return InvalidInput(
                message="Please select or enter an ISA provider.",
                field="provider",
                code="provider_required",
            )
        self.draft.provider = provider.strip()
        self._advance(WizardStep.CHOOSE_TYPE)
        return None

    def choose_type(self, isa_type: ISAType) -> Optional[RuleViolation]:
        self._require(WizardStep.CHOOSE_TYPE)
        self.draft.isa_type = ISAType(isa_type)
        self._advance(WizardStep.ENTER_AMOUNT)
        return None

    def enter_amount(
        self,
        amount: RawAmount,
        when: Optional[datetime] = None,
        notes: Optional[str] = None,
        account_number: Optional[str] = None,
    ) -> Optional[RuleViolation]:
        """
        Validate the amount against the per-type maximum.

        A single entry can never exceed the type's annual maximum
        (£20,000 overall, £4,000 for a Lifetime ISA). Capacity against what
        has already been paid in is checked when the entry is saved.
        """
        self._require(WizardStep.ENTER_AMOUNT)
        parsed, violation = parse_amount(amount)
        if violation:
            return violation

        isa_type = self.draft.isa_type
        if parsed > isa_type.max_contribution:
            return InvalidInput(
                message=(
                    f"{isa_type.display_name} contributions are limited to "
                    f"{format_gbp(isa_type.max_contribution)} per year."
                ),
                field="amount",
                code="amount_exceeds_type_limit",
            )

        self.draft.amount = parsed
        self.draft.date = when or self._now or datetime.now(UK_TIMEZONE)
        self.draft.notes = notes.strip() if notes and notes.strip() else None
        self.draft.account_number = (
            account_number.strip() if account_number and account_number.strip() else None
        )

        if self._registry.needs_confirmation(self.draft.provider, isa_type):
            self._advance(WizardStep.CONFIRM_FLEXIBILITY)
        else:
            self.draft.is_flexible = self._registry.is_flexible(self.draft.provider, isa_type)
            self._advance(WizardStep.DONE)
        return None

    def confirm_flexibility(self, is_flexible: bool) -> Optional[RuleViolation]:
        """Record the user's answer in the registry and finish."""
        self._require(WizardStep.CONFIRM_FLEXIBILITY)
        violation = self._registry.set(self.draft.provider, self.draft.isa_type, is_flexible)
        if violation:
            return violation
        self.draft.is_flexible = is_flexible
        self._advance(WizardStep.DONE)
        return None

    def back(self) -> WizardStep:
        """Return to the previous step. A no-op on the first step."""
        if self._history:
            self.step = self._history.pop()
        return self.step

    def build_contribution(self) -> Contribution:
        """The new ledger entry. Only legal once the wizard is done."""
        self._require(WizardStep.DONE)
        return Contribution(
            isa_type=self.draft.isa_type,
            provider=self.draft.provider,
            amount=self.draft.amount,
            date=self.draft.date,
            notes=self.draft.notes,
            account_number=self.draft.account_number,
        )
