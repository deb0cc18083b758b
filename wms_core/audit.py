"""Audit trail of every WMS mutation, with optional S3 export."""

from __future__ import annotations

import json
import logging
import threading
import uuid
from collections import deque
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

logger = logging.getLogger(__name__)

# in-memory window; older events live only in the S3 export
MAX_EVENTS = 10_000


@dataclass
class AuditEvent:
    event_id: str
    operation: str
    scope: str
    entity_id: str
    before: dict
    after: dict
    actor: str = "system"
    timestamp: str = field(default_factory=lambda: datetime.utcnow().isoformat())


class AuditTrail:
    """Keeps audit events in memory and mirrors them to S3 when a bucket is set.

    The S3 client is created lazily and can be injected for tests. Export
    failures are logged and never undo the audited operation.
    """

    def __init__(
        self,
        bucket: Optional[str] = None,
        prefix: str = "wms-audit",
        region_name: str = "us-east-1",
        s3_client: Optional[Any] = None,
        max_events: int = MAX_EVENTS,
    ):
        self.bucket = bucket
        self.prefix = prefix.strip("/")
        self.region_name = region_name
        self._s3 = s3_client
        self._events: deque[AuditEvent] = deque(maxlen=max_events)
        self._lock = threading.Lock()

    @property
    def s3(self) -> Any:
        if self._s3 is None:
            self._s3 = boto3.client("s3", region_name=self.region_name)
        return self._s3

    def record(
        self,
        operation: str,
        scope: str,
        entity_id: str,
        before: Optional[dict] = None,
        after: Optional[dict] = None,
        actor: str = "system",
    ) -> AuditEvent:
        event = AuditEvent(
            event_id=str(uuid.uuid4()),
            operation=operation,
            scope=scope,
            entity_id=entity_id,
            before=before or {},
            after=after or {},
            actor=actor,
        )
        with self._lock:
            self._events.append(event)
        logger.debug("Audit: %s %s/%s", operation, scope, entity_id)

        if self.bucket:
            self._export(event)
        return event

    def _export(self, event: AuditEvent) -> None:
        timestamp = datetime.utcnow().strftime("%Y-%m-%dT%H-%M-%S")
        key = f"{self.prefix}/{event.scope}/{event.operation}-{timestamp}-{event.event_id[:8]}.json"
        try:
            s3 = self.s3
            s3.put_object(
                Bucket=self.bucket,
                Key=key,
                Body=json.dumps(asdict(event), default=str),
            )
        except (BotoCoreError, ClientError) as e:
            logger.warning("Audit export failed [%s]: %s", key, e)

    def events(
        self,
        scope: Optional[str] = None,
        entity_id: Optional[str] = None,
        operation: Optional[str] = None,
    ) -> list[AuditEvent]:
        with self._lock:
            entries = list(self._events)
        if scope:
            entries = [e for e in entries if e.scope == scope]
        if entity_id:
            entries = [e for e in entries if e.entity_id == entity_id]
        if operation:
            entries = [e for e in entries if e.operation == operation]
        return entries
