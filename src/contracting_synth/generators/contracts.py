"""Generator for the contracts table."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import date, timedelta

import pandas as pd
from numpy.random import Generator

from contracting_synth.config import SynthConfig
from contracting_synth.context import GenerationContext
from contracting_synth.generators._parents import require_parent
from contracting_synth.schema import (
    CONTRACTS,
    ContractStatus,
    ContractType,
    RenewalTerms,
    values,
)
from contracting_synth.util.sampling import randint, uniform

TABLE_NAME = "contracts"

ENDED_STATUSES = [ContractStatus.EXPIRED.value, ContractStatus.TERMINATED.value]
PENDING_STATUSES = [ContractStatus.DRAFT.value, ContractStatus.UNDER_REVIEW.value]


def status_bucket(start_date: date, end_date: date, today: date) -> list[str]:
    """Statuses consistent with the contract dates relative to ``today``."""
    if end_date < today:
        return ENDED_STATUSES
    if start_date > today:
        return PENDING_STATUSES
    return [ContractStatus.ACTIVE.value]


def contract_status(rng: Generator, start_date: date, end_date: date, today: date) -> str:
    bucket = status_bucket(start_date, end_date, today)
    if len(bucket) == 1:
        return bucket[0]
    return bucket[int(rng.integers(0, len(bucket)))]


def generate(
    ctx: GenerationContext,
    cfg: SynthConfig,
    parents: Mapping[str, pd.DataFrame],
    count: int | None = None,
) -> pd.DataFrame:
    """Generate 1-3 contracts per client.

    Contract value scales with the client's retainer; status follows from
    the contract dates relative to the reference date.
    """
    rng = ctx.rng_for(TABLE_NAME)
    clients = require_parent(parents, "clients", TABLE_NAME)

    contract_types = values(ContractType)
    renewal_terms = values(RenewalTerms)
    today = ctx.reference_date

    rows = []
    for client in clients.itertuples(index=False):
        client_since = client.client_since if pd.notna(client.client_since) else today
        retainer = float(client.monthly_retainer) if pd.notna(client.monthly_retainer) else 0.0

        num_contracts = randint(
            rng, cfg.scale.contracts_per_client_min, cfg.scale.contracts_per_client_max
        )
        for _ in range(num_contracts):
            contract_type = ctx.sample_categorical(rng, contract_types)

            start_date = client_since + timedelta(days=randint(rng, -30, 30))
            end_date = start_date + timedelta(days=randint(rng, 365, 1095))

            base_value = retainer * 12 * uniform(rng, 0.5, 2.0)
            contract_value = int(base_value * uniform(rng, 0.8, 1.5))

            rows.append(
                {
                    "contract_id": ctx.stable_id(CONTRACTS.id_prefix),
                    "client_id": client.client_id,
                    "contract_type": contract_type,
                    "start_date": start_date,
                    "end_date": end_date,
                    "contract_value": contract_value,
                    "renewal_terms": ctx.sample_categorical(rng, renewal_terms),
                    "status": contract_status(rng, start_date, end_date, today),
                }
            )

    return pd.DataFrame(rows, columns=CONTRACTS.column_names)
