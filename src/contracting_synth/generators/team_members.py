"""Generator for the team_members base table."""

from __future__ import annotations

import pandas as pd

from contracting_synth.config import SynthConfig
from contracting_synth.context import GenerationContext
from contracting_synth.schema import TEAM_MEMBERS, Role, Seniority, values
from contracting_synth.util.sampling import randint, uniform

TABLE_NAME = "team_members"

# Hourly rate band by seniority
BASE_RATES = {
    Seniority.JUNIOR.value: (50, 80),
    Seniority.MID_LEVEL.value: (80, 120),
    Seniority.SENIOR.value: (120, 180),
    Seniority.LEAD.value: (150, 220),
    Seniority.PRINCIPAL.value: (200, 300),
}

SPECIALIST_ROLES = {
    Role.SOLUTION_ARCHITECT.value,
    Role.TECHNICAL_LEAD.value,
    Role.DATA_SCIENTIST.value,
}
SPECIALIST_PREMIUM = 1.2

SKILL_SETS = {
    Role.FULL_STACK.value: ["JavaScript", "React", "Node.js", "Python", "SQL"],
    Role.FRONTEND.value: ["React", "Vue.js", "Angular", "CSS", "TypeScript"],
    Role.BACKEND.value: ["Python", "Java", "Node.js", "PostgreSQL", "Redis"],
    Role.DEVOPS.value: ["AWS", "Docker", "Kubernetes", "Terraform", "Jenkins"],
    Role.DATA_SCIENTIST.value: ["Python", "R", "TensorFlow", "SQL", "Tableau"],
    Role.DESIGNER.value: ["Figma", "Sketch", "Adobe XD", "Prototyping", "User Research"],
    Role.PROJECT_MANAGER.value: ["Agile", "Scrum", "JIRA", "Risk Management", "Stakeholder Management"],
    Role.QA.value: ["Selenium", "Jest", "Cypress", "Manual Testing", "API Testing"],
    Role.SOLUTION_ARCHITECT.value: ["System Design", "Cloud Architecture", "Microservices", "APIs"],
    Role.TECHNICAL_LEAD.value: ["Leadership", "Code Review", "Architecture", "Mentoring"],
}


def rate_range(role: str, seniority: str) -> tuple[int, int]:
    """Hourly rate bounds for a role and seniority, including the specialist premium."""
    min_rate, max_rate = BASE_RATES[seniority]
    if role in SPECIALIST_ROLES:
        min_rate = int(min_rate * SPECIALIST_PREMIUM)
        max_rate = int(max_rate * SPECIALIST_PREMIUM)
    return min_rate, max_rate


def generate(ctx: GenerationContext, cfg: SynthConfig, count: int) -> pd.DataFrame:
    """Generate ``count`` team member records.

    Hourly rate is drawn from the seniority band, with a 1.2x premium for
    specialist roles. Skills are the role's skill set.
    """
    rng = ctx.rng_for(TABLE_NAME)
    fake = ctx.faker_for(TABLE_NAME)

    roles = values(Role)
    seniorities = values(Seniority)

    rows = []
    for _ in range(count):
        role = ctx.sample_categorical(rng, roles)
        seniority = ctx.sample_categorical(rng, seniorities)
        min_rate, max_rate = rate_range(role, seniority)

        rows.append(
            {
                "member_id": ctx.stable_id(TEAM_MEMBERS.id_prefix),
                "first_name": fake.first_name(),
                "last_name": fake.last_name(),
                "role": role,
                "seniority": seniority,
                "hourly_rate": randint(rng, min_rate, max_rate),
                "skills": ", ".join(SKILL_SETS.get(role, ["General"])),
                "availability": round(uniform(rng, 0.5, 1.0), 2),
                "hire_date": ctx.date_within(rng, cfg.time_window.team_history_years),
            }
        )

    return pd.DataFrame(rows, columns=TEAM_MEMBERS.column_names)
