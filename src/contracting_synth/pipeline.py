"""End-to-end generation pipeline.

Runs the stages strictly in order::

    SEEDING -> EXPANDING -> DERIVING -> VALIDATING -> EXPORTING -> DONE

Expansion failures degrade in place to the replication fallback. Any other
exception aborts the run before export, leaving the pipeline in FAILED.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

import pandas as pd

from contracting_synth.config import SynthConfig
from contracting_synth.context import GenerationContext
from contracting_synth.errors import PipelineStateError
from contracting_synth.expansion import CTGANTrainer, RowCountExpander, build_expander
from contracting_synth.export import export_bundle
from contracting_synth.generators import generate_base, generate_dependent
from contracting_synth.postprocess import postprocess
from contracting_synth.schema import GENERATION_ORDER, get_table_spec
from contracting_synth.transport import BundleTransport
from contracting_synth.validate import validate

logger = logging.getLogger(__name__)

SEEDED_TABLES = ["clients", "team_members", "projects"]
DERIVED_TABLES = ["project_assignments", "tickets", "invoices", "contracts"]


class PipelineState(str, Enum):
    SEEDING = "seeding"
    EXPANDING = "expanding"
    DERIVING = "deriving"
    VALIDATING = "validating"
    EXPORTING = "exporting"
    DONE = "done"
    FAILED = "failed"


_NEXT_STATE: dict[PipelineState | None, PipelineState] = {
    None: PipelineState.SEEDING,
    PipelineState.SEEDING: PipelineState.EXPANDING,
    PipelineState.EXPANDING: PipelineState.DERIVING,
    PipelineState.DERIVING: PipelineState.VALIDATING,
    PipelineState.VALIDATING: PipelineState.EXPORTING,
    PipelineState.EXPORTING: PipelineState.DONE,
}


@dataclass
class PipelineResult:
    """Outcome of a pipeline run.

    Attributes:
        tables: Final tables in generation order.
        issues: Validation issues (never blocking).
        strategies: Expansion strategy used per table.
        summary_path: Bundle summary file, once exported.
        delivered_to: Location reported by the transport, if any.
    """

    tables: dict[str, pd.DataFrame]
    issues: list[str] = field(default_factory=list)
    strategies: dict[str, str] = field(default_factory=dict)
    summary_path: Path | None = None
    delivered_to: str | None = None


class GenerationPipeline:
    """Seeds, expands, derives, validates and exports the full table set."""

    def __init__(
        self,
        cfg: SynthConfig,
        expander: RowCountExpander | None = None,
        transport: BundleTransport | None = None,
    ) -> None:
        self.cfg = cfg
        self.ctx = GenerationContext(seed=cfg.seed, reference_date=cfg.time_window.reference_date)
        self.expander = expander
        self.transport = transport
        self.state: PipelineState | None = None
        self.seed_tables: dict[str, pd.DataFrame] = {}
        self.tables: dict[str, pd.DataFrame] = {}
        self.strategies: dict[str, str] = {}

    def _advance(self, target: PipelineState) -> None:
        expected = _NEXT_STATE.get(self.state)
        if target != expected:
            current = self.state.value if self.state else "not started"
            raise PipelineStateError(f"Illegal pipeline transition: {current} -> {target.value}")
        logger.info("Pipeline state: %s", target.value)
        self.state = target

    def _check_preconditions(self) -> None:
        if self.expander is not None:
            return
        if self.cfg.expansion.model == "ctgan":
            CTGANTrainer.ensure_available()
        self.expander = build_expander(self.cfg, self.ctx)

    def _expand(self, table_name: str, seed: pd.DataFrame) -> pd.DataFrame:
        spec = get_table_spec(table_name)
        multiplier = self.cfg.expansion.resolve_multiplier(len(seed))
        result = self.expander.expand(seed, multiplier, spec)
        self.strategies[table_name] = result.strategy

        final = postprocess(result.table, seed, spec, rng=self.ctx.rng_for(f"postprocess:{table_name}"))
        self.ctx.register_table(table_name, final)
        logger.info(
            "%s: %d seed rows -> %d rows (strategy: %s)",
            table_name,
            len(seed),
            len(final),
            result.strategy,
        )
        return final

    def _seed(self) -> None:
        self._advance(PipelineState.SEEDING)
        scale = self.cfg.scale
        clients = generate_base(self.ctx, self.cfg, "clients", scale.clients)
        team = generate_base(self.ctx, self.cfg, "team_members", scale.team_members)
        projects = generate_dependent(
            self.ctx, self.cfg, "projects", {"clients": clients}, count=scale.projects
        )
        self.seed_tables.update({"clients": clients, "team_members": team, "projects": projects})
        for name in SEEDED_TABLES:
            logger.info("Seeded %s: %d rows", name, len(self.seed_tables[name]))

    def _expand_seeds(self) -> None:
        self._advance(PipelineState.EXPANDING)
        for name in SEEDED_TABLES:
            self.tables[name] = self._expand(name, self.seed_tables[name])

    def _derive(self) -> None:
        self._advance(PipelineState.DERIVING)
        for name in DERIVED_TABLES:
            seed = generate_dependent(self.ctx, self.cfg, name, self.tables)
            self.seed_tables[name] = seed
            self.tables[name] = self._expand(name, seed)

    def _validate(self) -> list[str]:
        self._advance(PipelineState.VALIDATING)
        return validate(self.tables)

    def _result(self, issues: list[str]) -> PipelineResult:
        ordered = {name: self.tables[name] for name in GENERATION_ORDER}
        return PipelineResult(tables=ordered, issues=issues, strategies=dict(self.strategies))

    def _generate(self) -> PipelineResult:
        self._check_preconditions()
        self._seed()
        self._expand_seeds()
        self._derive()
        issues = self._validate()
        return self._result(issues)

    def generate(self) -> PipelineResult:
        """Run every stage up to and including validation, without exporting."""
        try:
            return self._generate()
        except Exception:
            self.state = PipelineState.FAILED
            raise

    def run(self, out_dir: str | Path) -> PipelineResult:
        """Run the whole pipeline and export the bundle to ``out_dir``.

        Raises:
            ConfigurationError: If the configured expansion model is unavailable.
            ExportError: If the bundle cannot be written.
            PipelineStateError: If the pipeline has already run.
        """
        try:
            result = self._generate()

            self._advance(PipelineState.EXPORTING)
            result.summary_path = export_bundle(
                self.tables, self.cfg, out_dir, ctx=self.ctx, seed_tables=self.seed_tables
            )
            if self.transport is not None:
                result.delivered_to = self.transport.deliver(result.summary_path.parent)

            self._advance(PipelineState.DONE)
        except Exception:
            self.state = PipelineState.FAILED
            raise
        return result
