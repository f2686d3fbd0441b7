"""Generator for the invoices table.

Two invoice streams: monthly retainer invoices per client (no project), and
milestone/T&M/fixed-price invoices for projects that are billing.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import date, timedelta
from typing import Any

import pandas as pd
from numpy.random import Generator

from contracting_synth.config import SynthConfig
from contracting_synth.context import GenerationContext
from contracting_synth.generators._parents import require_parent
from contracting_synth.schema import (
    INVOICES,
    PROJECT_PAYMENT_STATUS,
    RETAINER_PAYMENT_STATUS,
    InvoiceType,
    PaymentMethod,
    PaymentStatus,
    ProjectStatus,
    WeightedCategories,
    values,
)
from contracting_synth.util.sampling import randint, uniform

TABLE_NAME = "invoices"

BILLING_STATUSES = {
    ProjectStatus.COMPLETED.value,
    ProjectStatus.DEVELOPMENT.value,
    ProjectStatus.TESTING.value,
}
PROJECT_INVOICE_TYPES = [
    InvoiceType.MILESTONE.value,
    InvoiceType.TIME_AND_MATERIALS.value,
    InvoiceType.FIXED_PRICE.value,
]
PAYMENT_TERMS_DAYS = 30
RETAINER_MAX_DAYS_TO_PAY = 30
PROJECT_MAX_DAYS_TO_PAY = 45
TAX_RATE_RANGE = (0.08, 0.15)


def split_amounts(amount_gross: float, tax_rate: float) -> tuple[float, float, float]:
    """Return (gross, tax, net) rounded to cents, with net == gross - tax."""
    gross = round(float(amount_gross), 2)
    tax = round(gross * tax_rate, 2)
    net = round(gross - tax, 2)
    return gross, tax, net


class _InvoiceBuilder:
    """Accumulates invoice rows sharing one RNG and ID sequence."""

    def __init__(self, ctx: GenerationContext, rng: Generator) -> None:
        self.ctx = ctx
        self.rng = rng
        self.rows: list[dict[str, Any]] = []
        self._methods = values(PaymentMethod)

    def add(
        self,
        client_id: str,
        project_id: str | None,
        invoice_type: str,
        invoice_date: date,
        amount_gross: float,
        status_weights: WeightedCategories,
        max_days_to_pay: int,
    ) -> None:
        gross, tax, net = split_amounts(amount_gross, uniform(self.rng, *TAX_RATE_RANGE))

        status = self.ctx.sample_categorical(
            self.rng, status_weights.values, weights=status_weights.weights
        )
        payment_date = None
        if status == PaymentStatus.PAID.value:
            payment_date = invoice_date + timedelta(days=randint(self.rng, 1, max_days_to_pay))

        self.rows.append(
            {
                "invoice_id": self.ctx.stable_id(INVOICES.id_prefix),
                "client_id": client_id,
                "project_id": project_id,
                "invoice_type": invoice_type,
                "invoice_date": invoice_date,
                "due_date": invoice_date + timedelta(days=PAYMENT_TERMS_DAYS),
                "amount_gross": gross,
                "tax_amount": tax,
                "amount_net": net,
                "payment_status": status,
                "payment_date": payment_date,
                "payment_method": self.ctx.sample_categorical(self.rng, self._methods),
            }
        )


def generate(
    ctx: GenerationContext,
    cfg: SynthConfig,
    parents: Mapping[str, pd.DataFrame],
    count: int | None = None,
) -> pd.DataFrame:
    """Generate retainer and project invoices.

    Retainer invoices: 12-24 monthly invoices per client with a positive
    retainer, starting at ``client_since`` and stopping at the reference
    date. Project invoices: 1-4 per project in a billing status, splitting
    ``budget_current``.

    Payment date is set only for Paid invoices.
    """
    rng = ctx.rng_for(TABLE_NAME)
    clients = require_parent(parents, "clients", TABLE_NAME)
    projects = require_parent(parents, "projects", TABLE_NAME)
    builder = _InvoiceBuilder(ctx, rng)
    today = ctx.reference_date

    for client in clients.itertuples(index=False):
        retainer = client.monthly_retainer
        if pd.isna(retainer) or retainer <= 0 or pd.isna(client.client_since):
            continue

        num_months = randint(rng, cfg.scale.retainer_months_min, cfg.scale.retainer_months_max)
        for month in range(num_months):
            invoice_date = client.client_since + timedelta(days=month * 30)
            if invoice_date > today:
                break
            builder.add(
                client.client_id,
                None,
                InvoiceType.MONTHLY_RETAINER.value,
                invoice_date,
                retainer,
                RETAINER_PAYMENT_STATUS,
                max_days_to_pay=RETAINER_MAX_DAYS_TO_PAY,
            )

    for project in projects.itertuples(index=False):
        if project.project_status not in BILLING_STATUSES:
            continue
        if pd.isna(project.start_date) or pd.isna(project.budget_current):
            continue

        planned_end = project.planned_end_date if pd.notna(project.planned_end_date) else project.start_date
        span = max(1, (planned_end - project.start_date).days)
        num_invoices = randint(rng, 1, 4)

        for _ in range(num_invoices):
            invoice_date = project.start_date + timedelta(days=randint(rng, 0, span))
            invoice_type = ctx.sample_categorical(rng, PROJECT_INVOICE_TYPES)

            # Amount based on project budget
            if num_invoices == 1:
                amount_gross = float(project.budget_current)
            else:
                amount_gross = float(project.budget_current) / num_invoices * uniform(rng, 0.8, 1.2)

            builder.add(
                project.client_id,
                project.project_id,
                invoice_type,
                invoice_date,
                amount_gross,
                PROJECT_PAYMENT_STATUS,
                max_days_to_pay=PROJECT_MAX_DAYS_TO_PAY,
            )

    return pd.DataFrame(builder.rows, columns=INVOICES.column_names)
