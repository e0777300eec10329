"""Add-contribution workflow package."""

from isa_allowance.workflow.add_contribution import (
    AddContributionWizard,
    ContributionDraft,
    WizardStateError,
    WizardStep,
)

__all__ = [
    "AddContributionWizard",
    "ContributionDraft",
    "WizardStateError",
    "WizardStep",
]
