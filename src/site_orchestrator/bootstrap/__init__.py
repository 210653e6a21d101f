"""Bootstrap sequence: phase order, orchestrator, and generated-file writers."""

from site_orchestrator.bootstrap.collaborators import Collaborators, StageContext
from site_orchestrator.bootstrap.orchestrator import BuildOrchestrator
from site_orchestrator.bootstrap.phases import PHASE_NAMES, PHASES

__all__ = [
    "PHASES",
    "PHASE_NAMES",
    "BuildOrchestrator",
    "Collaborators",
    "StageContext",
]
