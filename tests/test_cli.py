import json
import os
import subprocess
import sys
import tempfile
import textwrap
import unittest
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]

NALI_STUB = """
if [ "$1" = "-v" ]; then
    exit 0
fi
case "$1" in
    0.0.0.0) echo "$1 reserved" ;;
    *) echo "$1 [San Francisco, US] extra" ;;
esac
"""


class GeoCliTest(unittest.TestCase):
    def setUp(self) -> None:
        self.tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmp.cleanup)
        self.stub = Path(self.tmp.name) / "nali"
        self.stub.write_text("#!/bin/sh\n" + textwrap.dedent(NALI_STUB), encoding="utf-8")
        self.stub.chmod(0o755)
        self.env = os.environ.copy()
        self.env["NALI_GEO_CONFIG"] = str(Path(self.tmp.name) / "absent.yaml")
        for key in ("NALI_GEO_BIN", "NALI_GEO_TIMEOUT", "NALI_GEO_JSON", "NALI_GEO_LOG"):
            self.env.pop(key, None)

    def run_cli(self, *args: str, binary: str = "") -> subprocess.CompletedProcess:
        cmd = [sys.executable, "-m", "nali_geo.cli"]
        if binary:
            cmd += ["--binary", binary]
        return subprocess.run(
            [*cmd, *args],
            cwd=REPO_ROOT,
            env=self.env,
            capture_output=True,
            text=True,
            check=False,
        )

    def test_lookup_plain(self) -> None:
        proc = self.run_cli("lookup", "1.2.3.4", binary=str(self.stub))
        self.assertEqual(proc.returncode, 0, proc.stderr)
        self.assertEqual(proc.stdout.strip(), "1.2.3.4 -> San Francisco, US")

    def test_lookup_json(self) -> None:
        proc = self.run_cli("lookup", "1.2.3.4", "--json", binary=str(self.stub))
        self.assertEqual(proc.returncode, 0, proc.stderr)
        payload = json.loads(proc.stdout.strip())
        self.assertEqual(payload["ip"], "1.2.3.4")
        self.assertEqual(payload["city"], "San Francisco, US")
        self.assertEqual(payload["continent"], " ")

    def test_lookup_partial_failure(self) -> None:
        proc = self.run_cli("lookup", "1.2.3.4", "0.0.0.0", binary=str(self.stub))
        self.assertEqual(proc.returncode, 1)
        lines = proc.stdout.strip().splitlines()
        self.assertEqual(lines[0], "1.2.3.4 -> San Francisco, US")
        self.assertEqual(lines[1], "0.0.0.0 -> lookup failed")

    def test_lookup_without_tool(self) -> None:
        proc = self.run_cli("lookup", "1.2.3.4", binary=str(Path(self.tmp.name) / "missing"))
        self.assertEqual(proc.returncode, 3)
        self.assertIn("GeoIP lookup failed", proc.stdout)

    def test_binary_from_env(self) -> None:
        self.env["NALI_GEO_BIN"] = str(self.stub)
        proc = self.run_cli("check")
        self.assertEqual(proc.returncode, 0, proc.stderr)
        self.assertIn("available", proc.stdout)

    def test_check_unavailable(self) -> None:
        proc = self.run_cli("check", binary=str(Path(self.tmp.name) / "missing"))
        self.assertEqual(proc.returncode, 1)
        self.assertIn("unavailable", proc.stdout)

    def test_ensure_ready_fatal(self) -> None:
        proc = self.run_cli("ensure-ready", binary=str(Path(self.tmp.name) / "missing"))
        self.assertEqual(proc.returncode, 1)
        self.assertIn("Unable to find nali-cli program", proc.stderr)

    def test_ensure_ready_ok(self) -> None:
        proc = self.run_cli("ensure-ready", binary=str(self.stub))
        self.assertEqual(proc.returncode, 0, proc.stderr)


if __name__ == "__main__":
    unittest.main()
