import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from hexwatch import config, main
from hexwatch.watcher import WatcherStartError


class MainLifespanTests(unittest.IsolatedAsyncioTestCase):
    async def test_lifespan_starts_and_stops_watcher(self) -> None:
        tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(tmpdir.cleanup)

        with patch.object(config, "PROJECTS_DIR", Path(tmpdir.name)):
            async with main.lifespan(main.app):
                watcher = main.app.state.watcher
                self.assertTrue(watcher.is_running)
                self.assertEqual(main.app.state.scanner.root, Path(tmpdir.name))
                health = main.health()
                self.assertEqual(health["status"], "ok")
                self.assertEqual(health["sessions"], 0)
                self.assertEqual(health["watcher"], "debouncing")

        self.assertFalse(watcher.is_running)
        self.assertEqual(main.health()["watcher"], "stopped")

    async def test_lifespan_surfaces_unwatchable_root(self) -> None:
        tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(tmpdir.cleanup)

        with patch.object(config, "PROJECTS_DIR", Path(tmpdir.name) / "missing"):
            with self.assertRaises(WatcherStartError):
                async with main.lifespan(main.app):
                    self.fail("lifespan should not start")


if __name__ == "__main__":
    unittest.main()
