"""Audit logger - append-only, hash-chained audit trail for one session.

Every terminal pipeline transition emits an entry. Entries carry lengths,
rule ids, categories and text fingerprints, never raw message text.
"""
import copy
import hashlib
import json
import logging
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

GENESIS_HASH = "genesis"


class AuditEventType(Enum):
    """Events recorded in the audit trail."""
    # Session lifecycle
    SESSION_STARTED = "SESSION_STARTED"
    SESSION_ENDED = "SESSION_ENDED"
    CONNECTION = "CONNECTION"
    CONFIG_CHANGED = "CONFIG_CHANGED"

    # Terminal turn outcomes
    INJECTION_BLOCKED = "INJECTION_BLOCKED"
    EMERGENCY_DETECTED = "EMERGENCY_DETECTED"
    RATE_LIMITED = "RATE_LIMITED"
    QUERY_COMPLETE = "QUERY_COMPLETE"
    QUERY_FAILED = "QUERY_FAILED"

    # Advisory
    HEALTHCARE_BOUNDARY_FLAGGED = "HEALTHCARE_BOUNDARY_FLAGGED"
    OUTPUT_FILTERED = "OUTPUT_FILTERED"


@dataclass(frozen=True)
class AuditEntry:
    """Immutable audit log entry."""
    entry_id: str
    timestamp: datetime
    event_type: AuditEventType
    details: Dict[str, Any] = field(default_factory=dict)
    previous_hash: str = ""
    entry_hash: str = ""

    def compute_hash(self) -> str:
        """SHA-256 over every field except entry_hash itself."""
        payload = json.dumps(
            [
                self.entry_id,
                self.timestamp.isoformat(),
                self.event_type.value,
                self.details,
                self.previous_hash,
            ],
            sort_keys=True,
            default=str,
            separators=(",", ":"),
        )
        return hashlib.sha256(payload.encode("utf-8")).hexdigest()

    def to_dict(self) -> Dict[str, Any]:
        """Flat export shape: {id, timestamp, type, ...details, hashes}."""
        record: Dict[str, Any] = {
            "id": self.entry_id,
            "timestamp": self.timestamp.isoformat(),
            "type": self.event_type.value,
        }
        for key, value in self.details.items():
            if key not in record:
                record[key] = value
        record["previous_hash"] = self.previous_hash
        record["entry_hash"] = self.entry_hash
        return record


class AuditLogger:
    """Append-only audit log owned by a single session.

    Maintains a hash chain so the exported trail can be verified. No
    entry is ever mutated or removed during the session's lifetime.
    """

    def __init__(self, session_id: str = ""):
        """Initialize audit logger.

        Args:
            session_id: Owning session (included in Python log records only)
        """
        self.session_id = session_id
        self._entries: List[AuditEntry] = []
        self._last_hash: str = GENESIS_HASH

    def __len__(self) -> int:
        return len(self._entries)

    def log(
        self,
        event_type: AuditEventType,
        details: Optional[Dict[str, Any]] = None,
    ) -> AuditEntry:
        """Append an audit entry.

        Args:
            event_type: Event being recorded
            details: Event-specific fields (JSON-serializable)

        Returns:
            Created AuditEntry

        Logs:
            - AUDIT_ENTRY_CREATED: After entry is stored
        """
        entry = AuditEntry(
            entry_id=f"audit_{uuid.uuid4().hex[:16]}",
            timestamp=datetime.now(timezone.utc),
            event_type=event_type,
            details=copy.deepcopy(details or {}),
            previous_hash=self._last_hash,
        )
        entry = replace(entry, entry_hash=entry.compute_hash())

        self._entries.append(entry)
        self._last_hash = entry.entry_hash

        logger.info(
            "AUDIT_ENTRY_CREATED",
            extra={
                "entry_id": entry.entry_id,
                "event_type": event_type.value,
                "session_id": self.session_id,
                "entry_hash": entry.entry_hash[:16],  # Truncated for logs
            }
        )

        return copy.deepcopy(entry)

    def entries(self) -> List[AuditEntry]:
        """Deep copy of all entries in insertion order."""
        return copy.deepcopy(self._entries)

    def export(self) -> str:
        """Serialize the full trail as an ordered JSON array."""
        return json.dumps(
            [entry.to_dict() for entry in self._entries],
            indent=2,
            default=str,
        )

    def first_broken_entry(self) -> Optional[int]:
        """Index of the first entry whose link or hash does not verify.

        Returns:
            None when the whole chain is intact
        """
        prev = GENESIS_HASH
        for index, entry in enumerate(self._entries):
            if entry.previous_hash != prev or entry.compute_hash() != entry.entry_hash:
                return index
            prev = entry.entry_hash
        return None

    def verify_chain(self) -> bool:
        """True if no entry was altered, removed or reordered."""
        broken = self.first_broken_entry()
        if broken is None:
            return True

        logger.critical(
            "AUDIT_CHAIN_BROKEN",
            extra={
                "session_id": self.session_id,
                "entry_index": broken,
                "entry_id": self._entries[broken].entry_id,
            }
        )
        return False

    def query(
        self,
        event_type: Optional[AuditEventType] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> List[AuditEntry]:
        """Copies of entries matching every given filter, in insertion order."""
        return copy.deepcopy([
            entry for entry in self._entries
            if (event_type is None or entry.event_type == event_type)
            and (start_date is None or entry.timestamp >= start_date)
            and (end_date is None or entry.timestamp <= end_date)
        ])
