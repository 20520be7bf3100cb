"""
File Upload Script

Stream a local file to S3-compatible storage through the upload engine.

Usage:
    python -m s3_storage.scripts.upload_file report.pdf --bucket uploads
    python -m s3_storage.scripts.upload_file logo.svg --bucket media --auto-content-type
    python -m s3_storage.scripts.upload_file dump.tar --bucket backups --part-size 8388608
    python -m s3_storage.scripts.upload_file report.txt --bucket uploads --remove
"""

import asyncio
import json
import sys
from pathlib import Path
from typing import Dict, Optional, Tuple

import click
import structlog

from s3_storage.core.logging import configure_logging
from s3_storage.integrations.object_storage_client import ObjectStorageClient, StorageConfig
from s3_storage.integrations.storage_exceptions import (
    BucketAccessError,
    StorageConnectionError,
    StorageError,
)
from s3_storage.schemas.file import UploadedFile
from s3_storage.schemas.storage import StoredFile
from s3_storage.services.content_type import AUTO_CONTENT_TYPE
from s3_storage.services.s3_storage import S3Storage

logger = structlog.get_logger(__name__)


def parse_metadata(pairs: Tuple[str, ...]) -> Optional[Dict[str, str]]:
    """Turn ('a=1', 'b=2') into {'a': '1', 'b': '2'}."""
    if not pairs:
        return None
    metadata = {}
    for pair in pairs:
        name, sep, value = pair.partition("=")
        if not sep or not name:
            raise click.BadParameter(f"expected KEY=VALUE, got '{pair}'", param_hint="--metadata")
        metadata[name] = value
    return metadata


async def run_upload(
    client: ObjectStorageClient, storage: S3Storage, bucket: str, path: Path, remove: bool
) -> StoredFile:
    """Check the bucket, upload the file and optionally remove it again."""
    await client.head_bucket_async(bucket)
    logger.info("cli_upload_started", path=str(path), bucket=bucket)

    with path.open("rb") as stream:
        file = UploadedFile(stream=stream, fieldname="file", originalname=path.name)
        stored = await storage.store(None, file)

    if remove:
        await storage.remove(None, stored)
        logger.info("cli_object_removed", bucket=stored.bucket, key=stored.key)
    return stored


@click.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--bucket", required=True, help="Target bucket")
@click.option("--key", default=None, help="Object key (default: random hex key)")
@click.option("--acl", default=None, help="Canned ACL (default: private)")
@click.option("--storage-class", default=None, help="Storage class (default: STANDARD)")
@click.option("--part-size", type=int, default=None, help="Multipart chunk size in bytes")
@click.option("--content-type", default=None, help="Content type (default: application/octet-stream)")
@click.option("--auto-content-type", is_flag=True, help="Detect the content type from the file signature")
@click.option("--tagging", default=None, help="URL-encoded tag set, e.g. 'team=web&env=dev'")
@click.option("--metadata", "metadata_pairs", multiple=True, help="User metadata KEY=VALUE (repeatable)")
@click.option("--remove", is_flag=True, help="Delete the object again after a successful upload")
@click.option("--verbose", is_flag=True, help="Enable verbose logging")
def upload_file(
    path: Path,
    bucket: str,
    key: Optional[str],
    acl: Optional[str],
    storage_class: Optional[str],
    part_size: Optional[int],
    content_type: Optional[str],
    auto_content_type: bool,
    tagging: Optional[str],
    metadata_pairs: Tuple[str, ...],
    remove: bool,
    verbose: bool,
) -> None:
    """
    Upload PATH to object storage and print the stored file record as JSON.
    """
    if verbose:
        configure_logging(level="DEBUG", fmt="text")

    if content_type and auto_content_type:
        raise click.UsageError("--content-type and --auto-content-type are mutually exclusive")

    metadata = parse_metadata(metadata_pairs)

    try:
        client = ObjectStorageClient(StorageConfig.from_settings())
        storage = S3Storage(
            s3=client,
            bucket=bucket,
            acl=acl,
            key=key,
            storage_class=storage_class,
            part_size=part_size,
            content_type=AUTO_CONTENT_TYPE if auto_content_type else content_type,
            tagging=tagging,
            metadata=metadata,
        )
        stored = asyncio.run(run_upload(client, storage, bucket, path, remove))

    except StorageConnectionError as e:
        click.echo(f"✗ Connection Error: {e}", err=True)
        click.echo("  Check S3_ENDPOINT_URL and network connectivity", err=True)
        sys.exit(1)

    except BucketAccessError as e:
        click.echo(f"✗ Bucket Error: {e}", err=True)
        click.echo("  Check the bucket name and S3_ACCESS_KEY / S3_SECRET_KEY", err=True)
        sys.exit(1)

    except StorageError as e:
        click.echo(f"✗ Storage Error: {e}", err=True)
        sys.exit(1)

    except ValueError as e:
        click.echo(f"✗ Configuration Error: {e}", err=True)
        sys.exit(1)

    click.echo(json.dumps(stored.model_dump(exclude_none=True), indent=2))
    if remove:
        click.echo(f"• Removed {stored.bucket}/{stored.key}")


if __name__ == "__main__":
    upload_file()
