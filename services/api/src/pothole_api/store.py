"""Report persistence with time-to-live.

Records are JSON documents keyed by report id. Expiry belongs to the backend:
S3 removes objects through a lifecycle rule on the record prefix, and reads
treat anything past its ``expires-at`` metadata as gone in the meantime.
"""

from __future__ import annotations

import json
import logging
import threading
import time
from datetime import datetime, timedelta, timezone
from io import BytesIO
from typing import Any, Protocol

import boto3
from botocore.client import BaseClient
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError

from pothole_api.errors import ReportStoreError

logger = logging.getLogger(__name__)

REPORT_TTL_SECONDS = 60 * 60 * 24 * 180
EXPIRES_AT_KEY = "expires-at"
NOT_FOUND_CODES = {"NoSuchKey", "404", "NotFound"}


class ReportStore(Protocol):
    def put(self, report_id: str, record: dict[str, Any], ttl: int = REPORT_TTL_SECONDS) -> None: ...

    def get(self, report_id: str) -> dict[str, Any] | None: ...


def make_s3_client(
    *, region: str | None = None, endpoint_url: str | None = None
) -> BaseClient:
    """Return a boto3 S3 client for the given region/endpoint."""

    config = BotoConfig(region_name=region) if region else None
    if endpoint_url:
        return boto3.client("s3", endpoint_url=endpoint_url, config=config)
    return boto3.client("s3", config=config)


class S3ReportStore:
    """Report store backed by one S3 object per record."""

    def __init__(
        self,
        *,
        client: BaseClient,
        bucket: str,
        prefix: str = "reports/",
        sse: str | None = None,
    ) -> None:
        self.client = client
        self.bucket = bucket
        self.prefix = prefix
        self.sse = sse

    def _key(self, report_id: str) -> str:
        return f"{self.prefix}{report_id}.json"

    def ensure_expiry_rule(self, ttl: int = REPORT_TTL_SECONDS) -> None:
        """Install a lifecycle rule expiring records under the prefix after ``ttl``."""

        days = max(1, ttl // 86400)
        try:
            self.client.put_bucket_lifecycle_configuration(
                Bucket=self.bucket,
                LifecycleConfiguration={
                    "Rules": [
                        {
                            "ID": "expire-reports",
                            "Filter": {"Prefix": self.prefix},
                            "Status": "Enabled",
                            "Expiration": {"Days": days},
                        }
                    ]
                },
            )
        except (BotoCoreError, ClientError) as exc:
            raise ReportStoreError("Failed to configure report expiry") from exc

    def put(self, report_id: str, record: dict[str, Any], ttl: int = REPORT_TTL_SECONDS) -> None:
        expires_at = datetime.now(timezone.utc) + timedelta(seconds=ttl)
        body = BytesIO(json.dumps(record, ensure_ascii=False).encode("utf-8"))
        args: dict[str, Any] = {
            "Bucket": self.bucket,
            "Key": self._key(report_id),
            "Body": body,
            "ContentType": "application/json",
            "Expires": expires_at,
            "Metadata": {EXPIRES_AT_KEY: expires_at.isoformat()},
        }
        if self.sse:
            args["ServerSideEncryption"] = self.sse

        try:
            self.client.put_object(**args)
        except (BotoCoreError, ClientError) as exc:
            logger.error("Failed to store report %s: %s", report_id, exc)
            raise ReportStoreError() from exc

    def get(self, report_id: str) -> dict[str, Any] | None:
        try:
            obj = self.client.get_object(Bucket=self.bucket, Key=self._key(report_id))
        except ClientError as exc:
            code = str(exc.response.get("Error", {}).get("Code", ""))
            if code in NOT_FOUND_CODES:
                return None
            logger.error("Failed to read report %s: %s", report_id, exc)
            raise ReportStoreError("Failed to read report") from exc
        except BotoCoreError as exc:
            logger.error("Failed to read report %s: %s", report_id, exc)
            raise ReportStoreError("Failed to read report") from exc

        expires_at = (obj.get("Metadata") or {}).get(EXPIRES_AT_KEY)
        if expires_at:
            try:
                expired = datetime.fromisoformat(expires_at) <= datetime.now(timezone.utc)
            except (TypeError, ValueError) as exc:
                logger.error("Report %s has unreadable expiry %r", report_id, expires_at)
                raise ReportStoreError("Stored report is corrupt") from exc
            if expired:
                return None

        try:
            return json.loads(obj["Body"].read().decode("utf-8"))
        except (KeyError, ValueError) as exc:
            raise ReportStoreError("Stored report is corrupt") from exc


class InMemoryReportStore:
    """Process-local store for development and tests."""

    def __init__(self, clock=time.monotonic) -> None:
        self._clock = clock
        self._items: dict[str, tuple[float, str]] = {}
        self._lock = threading.Lock()

    def put(self, report_id: str, record: dict[str, Any], ttl: int = REPORT_TTL_SECONDS) -> None:
        with self._lock:
            self._items[report_id] = (self._clock() + ttl, json.dumps(record))

    def get(self, report_id: str) -> dict[str, Any] | None:
        with self._lock:
            item = self._items.get(report_id)
            if item is None:
                return None
            expires_at, payload = item
            if expires_at <= self._clock():
                del self._items[report_id]
                return None
        return json.loads(payload)

    def __len__(self) -> int:
        return len(self._items)
