from sqlalchemy import JSON, BigInteger, Integer
from sqlalchemy.orm import declarative_base
from sqlalchemy.dialects.postgresql import JSONB
from datetime import datetime, timezone
import enum

Base = declarative_base()

# JSONB on Postgres, plain JSON elsewhere (SQLite in tests)
JSONPayload = JSON().with_variant(JSONB(), "postgresql")

# SQLite only autoincrements INTEGER PRIMARY KEY
PrimaryKey = BigInteger().with_variant(Integer(), "sqlite")


# ============================================================================
# ENUMS
# ============================================================================

class Level(str, enum.Enum):
    """Reporting granularity"""
    CAMPAIGN = "campaign"
    ADSET = "adset"


class SnapshotSource(str, enum.Enum):
    """Which pass produced a fact record: fast/approximate or authoritative"""
    DAY = "day"
    RECONCILED = "reconciled"


class IngestMode(str, enum.Enum):
    """Driver operating mode"""
    REMOTE = "remote"
    SNAPSHOT = "snapshot"


class EndpointStatus(str, enum.Enum):
    """Terminal outcome of one guarded source fetch"""
    OK = "OK"
    PARTIAL = "PARTIAL"
    FAILED = "FAILED"


class SourceState(str, enum.Enum):
    """Per-source lifecycle within one run"""
    PENDING = "pending"
    FETCHING = "fetching"
    OK = "ok"
    PARTIAL = "partial"
    FAILED = "failed"


class RunStatus(str, enum.Enum):
    """Ingestion run outcome"""
    SUCCESS = "success"
    PARTIAL = "partial"
    FAILED = "failed"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)
