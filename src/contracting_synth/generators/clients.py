"""Generator for the clients base table.

Company size drives the revenue bracket, revenue drives the monthly retainer,
and size, industry and revenue together shift the risk score.
"""

from __future__ import annotations

import pandas as pd

from contracting_synth.config import SynthConfig
from contracting_synth.context import GenerationContext
from contracting_synth.schema import (
    CLIENTS,
    AcquisitionChannel,
    CompanySize,
    Country,
    Industry,
    values,
)
from contracting_synth.util.sampling import randint, uniform

TABLE_NAME = "clients"

REVENUE_RANGES = {
    CompanySize.STARTUP.value: (50_000, 2_000_000),
    CompanySize.SMB.value: (500_000, 10_000_000),
    CompanySize.MID_MARKET.value: (10_000_000, 100_000_000),
    CompanySize.ENTERPRISE.value: (100_000_000, 50_000_000_000),
}

RETAINER_MIN = 5_000
RETAINER_MAX = 100_000
RISK_MIN = 0.1
RISK_MAX = 1.0

LOW_RISK_INDUSTRIES = {Industry.GOVERNMENT.value, Industry.HEALTHCARE.value}


def compute_retainer(annual_revenue: int, factor: float) -> int:
    """Monthly retainer as 0.1% of revenue times ``factor``, clamped to the retainer band."""
    return min(RETAINER_MAX, max(RETAINER_MIN, int(annual_revenue * 0.001 * factor)))


def compute_risk_score(company_size: str, industry: str, annual_revenue: int, jitter: float) -> float:
    """Risk score from business attributes, clamped to [0.1, 1.0].

    Out-of-range values are clamped rather than resampled.
    """
    risk = 0.5
    if company_size == CompanySize.STARTUP.value:
        risk += 0.3
    if industry in LOW_RISK_INDUSTRIES:
        risk -= 0.2
    if annual_revenue < 1_000_000:
        risk += 0.2
    risk += jitter
    return round(max(RISK_MIN, min(RISK_MAX, risk)), 3)


def generate(ctx: GenerationContext, cfg: SynthConfig, count: int) -> pd.DataFrame:
    """Generate ``count`` client records.

    Creates client records with:
    - client_id: CLT_000000 .. CLT_{count-1}
    - company_name, contact_email, phone, website: Faker-generated contact info
    - industry, company_size, headquarters_country, acquisition_channel
    - annual_revenue: uniform integer inside the company size bracket
    - monthly_retainer: bounded function of revenue
    - risk_score: in [0.1, 1.0]
    - client_since: within the client history window

    Args:
        ctx: Generation context with RNG.
        cfg: Configuration with the time window.
        count: Number of rows to produce.

    Returns:
        DataFrame with exactly ``count`` client rows.
    """
    rng = ctx.rng_for(TABLE_NAME)
    fake = ctx.faker_for(TABLE_NAME)

    industries = values(Industry)
    sizes = values(CompanySize)
    countries = values(Country)
    channels = values(AcquisitionChannel)

    rows = []
    for _ in range(count):
        client_id = ctx.stable_id(CLIENTS.id_prefix)

        industry = ctx.sample_categorical(rng, industries)
        company_size = ctx.sample_categorical(rng, sizes)

        # Revenue correlates with company size
        min_rev, max_rev = REVENUE_RANGES[company_size]
        annual_revenue = randint(rng, min_rev, max_rev)

        monthly_retainer = compute_retainer(annual_revenue, uniform(rng, 0.5, 2.0))
        risk_score = compute_risk_score(
            company_size, industry, annual_revenue, uniform(rng, -0.2, 0.2)
        )

        row = {
            "client_id": client_id,
            "company_name": fake.company(),
            "industry": industry,
            "company_size": company_size,
            "annual_revenue": annual_revenue,
            "headquarters_country": ctx.sample_categorical(rng, countries),
            "contact_email": fake.company_email(),
            "phone": fake.phone_number(),
            "website": f"https://{fake.domain_name()}",
            "acquisition_channel": ctx.sample_categorical(rng, channels),
            "risk_score": risk_score,
            "monthly_retainer": monthly_retainer,
            "client_since": ctx.date_within(rng, cfg.time_window.client_history_years),
        }
        rows.append(row)

    return pd.DataFrame(rows, columns=CLIENTS.column_names)
