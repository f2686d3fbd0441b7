"""Exception types raised by the generation pipeline."""

from __future__ import annotations


class SynthError(Exception):
    """Base class for all generation errors."""


class ConfigurationError(SynthError, ValueError):
    """A precondition for the run is not met. Always fatal."""


class ExpansionError(SynthError, RuntimeError):
    """Training or sampling of a generative model failed.

    The row-count expander catches this (and any other exception raised by a
    trainer) and degrades to the replication fallback.
    """


class ExportError(SynthError, RuntimeError):
    """The bundle could not be written. Nothing is left in the output directory."""


class PipelineStateError(SynthError, RuntimeError):
    """The pipeline was asked to make an out-of-order state transition."""
