from __future__ import annotations

import hashlib
import json
import unittest
from datetime import date
from unittest import mock

from zigupdate.common.config import RuntimeConfig
from zigupdate.common.errors import ParseError, UntrustedSourceError
from zigupdate.updater.manifest_service import (
    METADATA_KEYS,
    ManifestService,
    archive_from_raw,
    archive_layout,
    parse_manifest,
)

SHA = hashlib.sha256(b"zig").hexdigest()


def _archive(name: str, version: str = "0.11.0") -> dict[str, str]:
    return {
        "tarball": f"https://ziglang.org/download/{version}/{name}",
        "shasum": SHA,
        "size": "3",
    }


def _sample_index() -> dict:
    return {
        "master": {
            "version": "0.12.0-dev.1+abcdef",
            "date": "2023-09-01",
            "docs": "https://ziglang.org/documentation/master/",
            "stdDocs": "https://ziglang.org/documentation/master/std/",
            "src": _archive("zig-0.12.0-dev.1+abcdef.tar.xz", "builds"),
            "x86_64-linux": _archive("zig-linux-x86_64-0.12.0-dev.1+abcdef.tar.xz", "builds"),
        },
        "0.11.0": {
            "date": "2023-08-04",
            "docs": "https://ziglang.org/documentation/0.11.0/",
            "stdDocs": "https://ziglang.org/documentation/0.11.0/std/",
            "notes": "https://ziglang.org/download/0.11.0/release-notes.html",
            "x86_64-linux": _archive("zig-linux-x86_64-0.11.0.tar.xz"),
            "x86_64-windows": _archive("zig-windows-x86_64-0.11.0.zip"),
        },
        "0.10.0": {
            "date": "2022-10-31",
            "docs": "https://ziglang.org/documentation/0.10.0/",
            "x86_64-linux": _archive("zig-linux-x86_64-0.10.0.tar.xz", "0.10.0"),
        },
    }


class ArchiveLayoutTests(unittest.TestCase):
    def test_tar_family_strips_from_last_tar(self) -> None:
        for name, expected in (
            ("zig-linux-x86_64-0.11.0.tar.xz", "zig-linux-x86_64-0.11.0"),
            ("zig-0.11.0.tar.gz", "zig-0.11.0"),
            ("weird.tar.name.tar", "weird.tar.name"),
        ):
            dir_name, command = archive_layout(name)
            self.assertEqual(dir_name, expected)
            self.assertEqual(command, ("tar", "xf"))
            self.assertTrue(name.startswith(dir_name))

    def test_zip_strips_extension(self) -> None:
        dir_name, command = archive_layout("zig-windows-x86_64-0.11.0.zip")
        self.assertEqual(dir_name, "zig-windows-x86_64-0.11.0")
        self.assertEqual(command, ("unzip", "-q"))

    def test_unknown_extension_rejected(self) -> None:
        with self.assertRaises(ParseError):
            archive_layout("zig-macos-0.11.0.dmg")
        with self.assertRaises(ParseError):
            archive_layout(".tar.xz")


class ArchiveFromRawTests(unittest.TestCase):
    def test_derives_paths_from_url(self) -> None:
        archive = archive_from_raw(_archive("zig-linux-x86_64-0.11.0.tar.xz"), "0.11.0", "x86_64-linux")
        self.assertEqual(archive.file_name, "zig-linux-x86_64-0.11.0.tar.xz")
        self.assertEqual(archive.dir_name, "zig-linux-x86_64-0.11.0")
        self.assertEqual(archive.size, 3)
        self.assertEqual(archive.shasum, SHA)
        self.assertTrue(archive.file_name.startswith(archive.dir_name))
        self.assertNotIn(".tar", archive.dir_name)

    def test_uppercase_shasum_is_normalized(self) -> None:
        raw = dict(_archive("zig.zip"), shasum=SHA.upper())
        self.assertEqual(archive_from_raw(raw, "0.11.0", "x86_64-windows").shasum, SHA)

    def test_bad_fields_rejected(self) -> None:
        for raw in (
            dict(_archive("zig.tar.xz"), size="lots"),
            dict(_archive("zig.tar.xz"), shasum="abc"),
            dict(_archive("zig.tar.xz"), tarball="not a url"),
            {"tarball": "https://ziglang.org/zig.tar.xz", "shasum": SHA},
        ):
            with self.assertRaises(ParseError):
                archive_from_raw(raw, "0.11.0", "x86_64-linux")


class ParseManifestTests(unittest.TestCase):
    def test_parse_keeps_order_and_splits_metadata(self) -> None:
        releases = parse_manifest(json.dumps(_sample_index()))
        self.assertEqual(list(releases), ["master", "0.11.0", "0.10.0"])

        release = releases["0.11.0"]
        self.assertEqual(release.meta.version, "0.11.0")
        self.assertEqual(release.meta.date, date(2023, 8, 4))
        self.assertEqual(release.meta.notes, "https://ziglang.org/download/0.11.0/release-notes.html")
        self.assertEqual(list(release.platforms), ["x86_64-linux", "x86_64-windows"])
        self.assertEqual(release.platforms["x86_64-windows"].unpack_command, ("unzip", "-q"))

        older = releases["0.10.0"]
        self.assertIsNone(older.meta.std_docs)
        self.assertIsNone(older.meta.notes)

    def test_every_platform_key_becomes_one_archive(self) -> None:
        raw = _sample_index()
        releases = parse_manifest(raw)
        for version, entry in raw.items():
            expected = [k for k in entry if k not in METADATA_KEYS]
            self.assertEqual(list(releases[version].platforms), expected)
            self.assertFalse(METADATA_KEYS & set(releases[version].platforms))

    def test_master_build_version_is_metadata(self) -> None:
        master = parse_manifest(_sample_index())["master"]
        self.assertEqual(master.meta.build_version, "0.12.0-dev.1+abcdef")
        self.assertIn("src", master.platforms)
        self.assertNotIn("version", master.platforms)

    def test_malformed_entries_rejected(self) -> None:
        cases = []
        bad_date = _sample_index()
        bad_date["0.11.0"]["date"] = "yesterday"
        cases.append(bad_date)
        bad_docs = _sample_index()
        bad_docs["0.11.0"]["docs"] = "/documentation"
        cases.append(bad_docs)
        scalar_platform = _sample_index()
        scalar_platform["0.11.0"]["x86_64-linux"] = "zig.tar.xz"
        cases.append(scalar_platform)
        missing_docs = _sample_index()
        del missing_docs["0.10.0"]["docs"]
        cases.append(missing_docs)
        for raw in cases:
            with self.assertRaises(ParseError):
                parse_manifest(raw)

    def test_invalid_json_rejected(self) -> None:
        with self.assertRaises(ParseError):
            parse_manifest("{not json")
        with self.assertRaises(ParseError):
            parse_manifest("[]")


class ManifestServiceTests(unittest.TestCase):
    def test_fetch_manifest_parses_response(self) -> None:
        session = mock.MagicMock()
        session.get.return_value.json.return_value = _sample_index()
        svc = ManifestService(RuntimeConfig(), session=session)

        releases = svc.fetch_manifest()

        session.get.assert_called_once_with("https://ziglang.org/download/index.json", timeout=None)
        self.assertIn("0.11.0", releases)

    def test_fetch_manifest_rejects_untrusted_host(self) -> None:
        session = mock.MagicMock()
        svc = ManifestService(RuntimeConfig(index_url="https://example.com/index.json"), session=session)
        with self.assertRaises(UntrustedSourceError):
            svc.fetch_manifest()
        session.get.assert_not_called()

    def test_fetch_manifest_rejects_non_json_body(self) -> None:
        session = mock.MagicMock()
        session.get.return_value.json.side_effect = ValueError("Expecting value")
        svc = ManifestService(RuntimeConfig(), session=session)
        with self.assertRaises(ParseError):
            svc.fetch_manifest()


if __name__ == "__main__":
    unittest.main()
