from __future__ import annotations

import gzip
import sys
from pathlib import Path

import polars as pl
import pytest

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

import run_manifest  # noqa: E402
import run_parquet_convert  # noqa: E402


class _FakeS3Client:
    def __init__(self) -> None:
        self.requests: list[dict] = []

    def list_objects_v2(self, **kwargs):
        self.requests.append(kwargs)
        if "ContinuationToken" not in kwargs:
            return {
                "Contents": [
                    {"Key": "a/b.txt", "Size": 100, "StorageClass": "STANDARD"},
                    {"Key": "a/c.txt", "Size": 200, "StorageClass": "GLACIER"},
                ],
                "IsTruncated": True,
                "NextContinuationToken": "next",
            }
        return {"Contents": [{"Key": "d.txt", "Size": 50, "StorageClass": "STANDARD"}], "IsTruncated": False}


def test_run_manifest_cli(tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]) -> None:
    import manifest_pkg.pipelines.manifest_pipeline as pipeline_mod

    client = _FakeS3Client()
    seen: dict[str, str | None] = {}

    def _fake_make_s3_client(region=None, profile=None, **kwargs):
        seen["region"] = region
        seen["profile"] = profile
        return client

    monkeypatch.setattr(pipeline_mod, "make_s3_client", _fake_make_s3_client)
    monkeypatch.delenv("AWS_PROFILE", raising=False)

    code = run_manifest.main(
        ["--bucket", "bucket", "--region", "ap-southeast-2", "--output", str(tmp_path / "inv.csv"), "--page-size", "2"]
    )

    assert code == 0
    assert seen == {"region": "ap-southeast-2", "profile": None}
    assert [r.get("ContinuationToken") for r in client.requests] == [None, "next"]
    with gzip.open(tmp_path / "inv.csv.gz", "rt", encoding="utf-8") as fh:
        assert len(fh.read().splitlines()) == 4
    out = capsys.readouterr().out
    assert "Found a total of: 3 objects" in out
    assert "STANDARD count: 2 size: 150 B" in out


def test_run_manifest_requires_region(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("AWS_REGION", raising=False)
    with pytest.raises(SystemExit) as excinfo:
        run_manifest.main(["--bucket", "bucket", "--output", str(tmp_path / "inv.csv")])
    assert excinfo.value.code == 2


def test_run_parquet_convert_cli(tmp_path: Path) -> None:
    manifest = tmp_path / "inv.csv"
    manifest.write_text('Path,Name,StorageClass,Size\n"a","b.txt","STANDARD",100\n', encoding="utf-8")
    out = tmp_path / "inv.parquet"

    code = run_parquet_convert.main(["--input", str(manifest), "--output", str(out), "--row-group-size", "1024"])

    assert code == 0
    assert pl.read_parquet(out).rows() == [("a", "b.txt", "STANDARD", 100)]


def test_run_parquet_convert_reports_format_errors(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    manifest = tmp_path / "inv.csv"
    manifest.write_text('Path,Name,StorageClass,Size\n"a","b.txt","STANDARD",oops\n', encoding="utf-8")

    code = run_parquet_convert.main(["--input", str(manifest), "--output", str(tmp_path / "inv.parquet")])

    assert code == 1
    assert "[error] ManifestFormatError" in capsys.readouterr().err
    assert not (tmp_path / "inv.parquet").exists()


def test_run_parquet_convert_rejects_bad_row_group_size(tmp_path: Path) -> None:
    with pytest.raises(SystemExit) as excinfo:
        run_parquet_convert.main(["--input", "x", "--output", "y", "--row-group-size", "zero"])
    assert excinfo.value.code == 2


def test_run_parquet_convert_accepts_legacy_row_group_flag(tmp_path: Path) -> None:
    manifest = tmp_path / "inv.csv"
    manifest.write_text('Path,Name,StorageClass,Size\n"a","b.txt","STANDARD",100\n', encoding="utf-8")

    args = run_parquet_convert.parse_args(
        ["--input", str(manifest), "--output", str(tmp_path / "inv.parquet"), "--rowgroupsize", "2048"]
    )
    assert args.row_group_size == 2048
    assert run_parquet_convert.main(
        ["--input", str(manifest), "--output", str(tmp_path / "inv.parquet"), "--rowgroupsize", "2048"]
    ) == 0
