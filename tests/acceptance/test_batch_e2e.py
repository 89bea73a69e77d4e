"""
End-to-end acceptance tests for a full nfe-downloader run.

Exercises the real stack: settings file → PKCS#12 credential → key file →
decode → synthesize → files on disk. Nothing is mocked; the credential is a
throwaway bundle generated by tests.conftest.

Each test follows Given/When/Then BDD structure in its docstring.

Markers: @pytest.mark.acceptance
"""

from __future__ import annotations

import json
import re
import xml.etree.ElementTree as ET
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest
from railway import ErrorCode, ResultAssertions

from nfe_downloader.config import load_settings
from nfe_downloader.main import main, run
from tests.conftest import SAMPLE_KEY, write_pkcs12

pytestmark = pytest.mark.acceptance

NS = {"nfe": "http://www.portalfiscal.inf.br/nfe"}
TIMESTAMP_LINE = re.compile(r"<(dhEmi|dhRecbto|nProt)>|<!-- Data de processamento")


def _settings_path(workdir: Path) -> Path:
    return workdir / "appsettings.json"


def _update_settings(workdir: Path, **changes: object) -> None:
    path = _settings_path(workdir)
    data = json.loads(path.read_text(encoding="utf-8"))
    data.update(changes)
    path.write_text(json.dumps(data), encoding="utf-8")


class TestHappyPath:
    def test_sample_key_produces_one_document(self, workdir: Path) -> None:
        """
        GIVEN a valid credential
        AND chaves.txt containing the sample key, "bad" and a blank line
        WHEN the downloader runs
        THEN exactly one document xmls/<key>.xml is produced
        AND the batch reports 1 success, 0 errors and 2 filtered lines.
        """
        settings = load_settings(_settings_path(workdir)).value()

        summary = ResultAssertions.assert_success(run(settings))

        assert summary.success_count == 1
        assert summary.error_count == 0
        assert summary.filtered_count == 2
        files = list((workdir / "xmls").iterdir())
        assert [f.name for f in files] == [f"{SAMPLE_KEY}.xml"]

    def test_document_content(self, workdir: Path) -> None:
        """
        GIVEN the default SP production settings
        WHEN main runs
        THEN it exits 0 and the document carries the key's CNPJ and SP codes.
        """
        assert main(["--settings", str(_settings_path(workdir))]) == 0

        root = ET.parse(workdir / "xmls" / f"{SAMPLE_KEY}.xml").getroot()
        inf = "nfe:NFe/nfe:infNFe"
        assert root.find(f"{inf}/nfe:emit/nfe:CNPJ", NS).text == "14200166000187"
        assert root.find(f"{inf}/nfe:ide/nfe:cUF", NS).text == "35"
        assert root.find(f"{inf}/nfe:ide/nfe:tpAmb", NS).text == "1"

    def test_mixed_batch_isolates_bad_key(self, workdir: Path) -> None:
        """
        GIVEN three 44-character lines, the middle one with letters in it
        WHEN the batch runs with two workers
        THEN two documents are written, one error is reported for the bad key
        AND main still exits 0.
        """
        bad = SAMPLE_KEY[:20] + "XX" + SAMPLE_KEY[22:]
        other = SAMPLE_KEY[:-1] + "9"
        (workdir / "chaves.txt").write_text(f"{SAMPLE_KEY}\n{bad}\n{other}\n", encoding="utf-8")
        _update_settings(workdir, workers=2)

        summary = run(load_settings(_settings_path(workdir)).value()).value()

        assert (summary.success_count, summary.error_count) == (2, 1)
        assert summary.failures[0][0] == bad
        assert sorted(f.name for f in (workdir / "xmls").iterdir()) == sorted(
            [f"{SAMPLE_KEY}.xml", f"{other}.xml"]
        )
        assert main(["--settings", str(_settings_path(workdir))]) == 0

    def test_duplicate_keys_across_workers(self, workdir: Path) -> None:
        """
        GIVEN chaves.txt listing the sample key 40 times
        WHEN the batch runs with eight workers
        THEN every line is a success, no error is reported
        AND exactly one document remains.
        """
        (workdir / "chaves.txt").write_text(f"{SAMPLE_KEY}\n" * 40, encoding="utf-8")
        _update_settings(workdir, workers=8)

        summary = run(load_settings(_settings_path(workdir)).value()).value()

        assert (summary.success_count, summary.error_count) == (40, 0)
        assert [f.name for f in (workdir / "xmls").iterdir()] == [f"{SAMPLE_KEY}.xml"]

    def test_rerun_overwrites_and_differs_only_in_timestamps(self, workdir: Path) -> None:
        """
        GIVEN a first run already produced the document
        WHEN the downloader runs again with identical inputs
        THEN there is still one file per key
        AND the two versions differ at most in timestamp-derived lines.
        """
        target = workdir / "xmls" / f"{SAMPLE_KEY}.xml"
        assert main(["--settings", str(_settings_path(workdir))]) == 0
        first = target.read_text(encoding="utf-8").splitlines()

        assert main(["--settings", str(_settings_path(workdir))]) == 0
        second = target.read_text(encoding="utf-8").splitlines()

        assert len(list(target.parent.iterdir())) == 1
        for a, b in zip(first, second, strict=True):
            if a != b:
                assert TIMESTAMP_LINE.match(a.strip()), a


class TestCredentialFailures:
    def test_wrong_password_aborts_with_no_artifacts(self, workdir: Path) -> None:
        """
        GIVEN a settings file with the wrong certificate password
        WHEN the downloader runs
        THEN the batch fails with AUTHENTICATION_ERROR
        AND no document is written
        AND main exits 1.
        """
        _update_settings(
            workdir,
            certificate={"path": str(workdir / "certificado.pfx"), "password": "nope"},
        )

        result = run(load_settings(_settings_path(workdir)).value())

        ResultAssertions.assert_failure(result, ErrorCode.AUTHENTICATION_ERROR)
        assert not (workdir / "xmls").exists()
        assert main(["--settings", str(_settings_path(workdir))]) == 1

    def test_expired_certificate_aborts(self, workdir: Path) -> None:
        """
        GIVEN a certificate that expired yesterday
        WHEN the downloader runs
        THEN the run is aborted with AUTHENTICATION_ERROR and nothing is written.
        """
        now = datetime.now(UTC)
        write_pkcs12(
            workdir / "certificado.pfx",
            not_before=now - timedelta(days=400),
            not_after=now - timedelta(days=1),
        )

        result = run(load_settings(_settings_path(workdir)).value())

        ResultAssertions.assert_failure(result, ErrorCode.AUTHENTICATION_ERROR)
        ResultAssertions.assert_failure_message_contains(result, "not valid")
        assert not (workdir / "xmls").exists()

    def test_missing_certificate_aborts(self, workdir: Path) -> None:
        (workdir / "certificado.pfx").unlink()

        result = run(load_settings(_settings_path(workdir)).value())

        ResultAssertions.assert_failure(result, ErrorCode.CONFIGURATION_ERROR)
        assert main(["--settings", str(_settings_path(workdir))]) == 1


class TestEnvironmentSettings:
    def test_homologation_and_region_from_settings(self, workdir: Path) -> None:
        """
        GIVEN run.uf = "RS" and run.homologation = true
        WHEN the downloader runs
        THEN the document carries tpAmb 2 and the RS codes.
        """
        _update_settings(workdir, run={"uf": "RS", "homologation": True})

        assert main(["--settings", str(_settings_path(workdir))]) == 0

        root = ET.parse(workdir / "xmls" / f"{SAMPLE_KEY}.xml").getroot()
        inf = "nfe:NFe/nfe:infNFe"
        assert root.find(f"{inf}/nfe:ide/nfe:tpAmb", NS).text == "2"
        assert root.find(f"{inf}/nfe:ide/nfe:cUF", NS).text == "43"
        assert root.find(f"{inf}/nfe:emit/nfe:enderEmit/nfe:UF", NS).text == "RS"

    def test_unknown_uf_printed_with_default_codes(self, workdir: Path) -> None:
        """
        GIVEN run.uf = "xx", a unit missing from the region table
        WHEN the downloader runs
        THEN the document carries UF "XX" with the SP region and locality codes.
        """
        _update_settings(workdir, run={"uf": "xx", "homologation": False})

        assert main(["--settings", str(_settings_path(workdir))]) == 0

        path = workdir / "xmls" / f"{SAMPLE_KEY}.xml"
        root = ET.parse(path).getroot()
        inf = "nfe:NFe/nfe:infNFe"
        assert root.find(f"{inf}/nfe:emit/nfe:enderEmit/nfe:UF", NS).text == "XX"
        assert root.find(f"{inf}/nfe:ide/nfe:cUF", NS).text == "35"
        assert root.find(f"{inf}/nfe:emit/nfe:enderEmit/nfe:cMun", NS).text == "3550308"
        assert "<!-- UF: XX -->" in path.read_text(encoding="utf-8")
