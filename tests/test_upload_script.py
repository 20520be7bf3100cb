from __future__ import annotations

import boto3
import click
import pytest
from click.testing import CliRunner

from s3_storage.scripts.upload_file import parse_metadata, upload_file
from tests.fakes import TEST_BUCKET_NAME


@pytest.fixture
def report(tmp_path):
    path = tmp_path / "report.txt"
    path.write_bytes(b"quarterly numbers")
    return path


def test_upload_file_stores_object(mocked_aws, report):
    result = CliRunner().invoke(
        upload_file,
        [str(report), "--bucket", TEST_BUCKET_NAME, "--key", "reports/q1.txt",
         "--content-type", "text/plain", "--metadata", "team=finance"],
    )

    assert result.exit_code == 0, result.output
    assert '"key": "reports/q1.txt"' in result.output
    assert '"size": 17' in result.output

    obj = boto3.client("s3", region_name="us-east-1").get_object(Bucket=TEST_BUCKET_NAME, Key="reports/q1.txt")
    assert obj["Body"].read() == b"quarterly numbers"
    assert obj["ContentType"] == "text/plain"
    assert obj["Metadata"] == {"team": "finance"}


def test_upload_file_with_remove(mocked_aws, report):
    result = CliRunner().invoke(upload_file, [str(report), "--bucket", TEST_BUCKET_NAME, "--key", "tmp.txt", "--remove"])

    assert result.exit_code == 0, result.output
    assert f"Removed {TEST_BUCKET_NAME}/tmp.txt" in result.output
    listing = boto3.client("s3", region_name="us-east-1").list_objects_v2(Bucket=TEST_BUCKET_NAME)
    assert listing.get("KeyCount", 0) == 0


def test_upload_file_reports_missing_bucket(mocked_aws, report):
    result = CliRunner().invoke(upload_file, [str(report), "--bucket", "missing-bucket"])

    assert result.exit_code == 1
    assert "Bucket Error" in result.output


def test_upload_file_rejects_bad_metadata(report):
    result = CliRunner().invoke(upload_file, [str(report), "--bucket", "b", "--metadata", "no-separator"])

    assert result.exit_code == 2
    assert "expected KEY=VALUE" in result.output


def test_upload_file_rejects_conflicting_content_type_flags(report):
    result = CliRunner().invoke(
        upload_file, [str(report), "--bucket", "b", "--content-type", "text/plain", "--auto-content-type"]
    )

    assert result.exit_code == 2
    assert "mutually exclusive" in result.output


def test_parse_metadata():
    assert parse_metadata(()) is None
    assert parse_metadata(("a=1", "b=x=y")) == {"a": "1", "b": "x=y"}
    with pytest.raises(click.BadParameter):
        parse_metadata(("=value",))
