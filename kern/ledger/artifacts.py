"""
Run artifact persistence.

After a run the CLI writes three JSON documents at fixed names:

- <audit_dir>/mneme_ledger.json: every ledger entry in append order
- <audit_dir>/violations_audit.json: the violation trail
- metrics_snapshot.json: the metrics snapshot (path configurable)
"""

import json
import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from .entry import LedgerEntry

LEDGER_FILENAME = "mneme_ledger.json"
VIOLATIONS_FILENAME = "violations_audit.json"
METRICS_FILENAME = "metrics_snapshot.json"
DEFAULT_AUDIT_DIR = "audit"


def default_audit_dir() -> str:
    return os.getenv("KERN_AUDIT_DIR", DEFAULT_AUDIT_DIR)


class ArtifactStore:
    """
    Write and read run artifacts on disk.

    Storage format:
    - audit directory with the ledger and violation documents
    - metrics snapshot beside it (or wherever metrics_path points)
    """

    def __init__(self, audit_dir: Optional[str] = None, metrics_path: Optional[str] = None):
        """
        Initialize artifact store.

        Args:
            audit_dir: Directory for ledger and violations (default $KERN_AUDIT_DIR or ./audit)
            metrics_path: Metrics snapshot file (default ./metrics_snapshot.json)
        """
        self.audit_dir = Path(audit_dir or default_audit_dir())
        self.metrics_path = Path(metrics_path or METRICS_FILENAME)

    @property
    def ledger_path(self) -> Path:
        return self.audit_dir / LEDGER_FILENAME

    @property
    def violations_path(self) -> Path:
        return self.audit_dir / VIOLATIONS_FILENAME

    def save(self, result: Dict[str, Any]) -> Dict[str, str]:
        """
        Persist a rendered run result.

        Args:
            result: RunResult.to_dict() output

        Returns:
            Mapping of artifact name -> written path
        """
        self.audit_dir.mkdir(parents=True, exist_ok=True)
        if self.metrics_path.parent != Path(""):
            self.metrics_path.parent.mkdir(parents=True, exist_ok=True)

        _write_json(self.ledger_path, result.get("ledger", []))
        _write_json(self.violations_path, result.get("auditTrail", []))
        _write_json(self.metrics_path, result.get("metrics", {}))

        return {
            "ledger": str(self.ledger_path),
            "violations": str(self.violations_path),
            "metrics": str(self.metrics_path),
        }


def _write_json(path: Path, data: Any) -> None:
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, ensure_ascii=False)
        f.write("\n")


def load_ledger(path: Union[str, Path]) -> List[LedgerEntry]:
    """
    Load a ledger document written by ArtifactStore.

    Accepts either the bare entry list or a run result carrying a "ledger" key.
    """
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if isinstance(data, dict):
        data = data.get("ledger", [])
    return [LedgerEntry.from_dict(item) for item in data]
