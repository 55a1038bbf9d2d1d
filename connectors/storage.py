"""
Snapshot storage.
Writes computed payloads (command-center snapshots) to the configured
storage location, one JSON document per property and run.

Environment variables:
    STORAGE_BUCKET: Bucket name for S3 storage
    STORAGE_PREFIX: Prefix for storage path
    STORAGE_TYPE: 'local' or 's3' (defaults to 'local')
    LOCAL_STORAGE_PATH: Root directory for local storage
"""
import os
import json
import pathlib
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

import boto3

DEFAULT_STORAGE_PREFIX = "engine_snapshots"

# Settings are read per call; the runner loads .env after this module is imported


def storage_type() -> str:
    return os.environ.get("STORAGE_TYPE", "local").lower()


def storage_bucket() -> str:
    return os.environ.get("STORAGE_BUCKET", "")


def storage_prefix() -> str:
    return os.environ.get("STORAGE_PREFIX", DEFAULT_STORAGE_PREFIX)


def snapshot_key(data_type: str, property_id: Optional[str] = None,
                 now: Optional[datetime] = None) -> str:
    """Relative key: <prefix>/<data_type>[/<property>]/<date>/<data_type>_<timestamp>.json"""
    now = now or datetime.now(timezone.utc)
    parts = [storage_prefix(), data_type]
    if property_id:
        parts.append(str(property_id))
    parts.append(now.strftime("%Y-%m-%d"))
    parts.append(f"{data_type}_{now.strftime('%Y%m%d_%H%M%S')}.json")
    return "/".join(parts)


def dump_raw_to_storage(
    payload: Union[Dict[str, Any], List[Dict[str, Any]]],
    data_type: str,
    property_id: Optional[str] = None,
) -> str:
    """
    Write a payload to storage as JSON.

    Args:
        payload: Data to store
        data_type: Kind of payload (e.g., 'command_center')
        property_id: Property the payload belongs to, if any

    Returns:
        Path or URI where data was stored
    """
    if not payload:
        raise ValueError("Empty payload provided")
    if not data_type:
        raise ValueError("Data type must be specified")

    key = snapshot_key(data_type, property_id)
    backend = storage_type()
    body = json.dumps(payload, ensure_ascii=False, indent=2, default=str)

    if backend == "local":
        base_path = os.environ.get("LOCAL_STORAGE_PATH", "storage")
        file_path = pathlib.Path(base_path) / key
        file_path.parent.mkdir(parents=True, exist_ok=True)
        file_path.write_text(body, encoding="utf-8")
        return str(file_path)

    elif backend == "s3":
        bucket = storage_bucket()
        if not bucket:
            raise ValueError("STORAGE_BUCKET environment variable must be set for S3 storage")

        s3 = boto3.client("s3")
        s3.put_object(
            Bucket=bucket,
            Key=key,
            Body=body,
            ContentType="application/json"
        )
        return f"s3://{bucket}/{key}"

    else:
        raise ValueError(f"Unsupported storage type: {backend}")
