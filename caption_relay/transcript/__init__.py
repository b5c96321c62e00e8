"""Transcript handling: snapshot diff, committed blocks, sink flushes, checkpoints."""
from .checkpoint import CheckpointWriterBase, create_checkpoint_writer
from .diff import DiffCommitEngine, DiffResult
from .flush import FlushScheduler
from .models import CaptionObservation, CommitOutcome, CommittedBlock, TranscriptEntry
from .store import TranscriptStore

__all__ = [
    "CaptionObservation",
    "CheckpointWriterBase",
    "CommitOutcome",
    "CommittedBlock",
    "DiffCommitEngine",
    "DiffResult",
    "FlushScheduler",
    "TranscriptEntry",
    "TranscriptStore",
    "create_checkpoint_writer",
]
