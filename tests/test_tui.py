"""Tests for the Textual browser."""

import asyncio

from diskdive.navigator import Navigator, ViewState
from diskdive.tui.app import DiskDiveApp
from diskdive.tui.screens import ConfirmDeleteScreen


async def _settle(app, pilot, rounds: int = 4) -> None:
    """Let worker tasks and their follow-ups finish."""
    for _ in range(rounds):
        await app.workers.wait_for_complete()
        await pilot.pause()


class TestDiskDiveApp:
    def test_initial_scan_shown(self, tree, cache, settings):
        nav = Navigator(tree, cache, settings)

        async def run():
            app = DiskDiveApp(nav)
            async with app.run_test() as pilot:
                await _settle(app, pilot)
                assert nav.state is ViewState.BROWSING
                assert [e.name for e in nav.entries][0] == "big"

                await pilot.press("down")
                assert nav.selected == 1

                await pilot.press("enter")
                await _settle(app, pilot)
                assert nav.path == str(tree / "mid")

                await pilot.press("backspace")
                await _settle(app, pilot)
                assert nav.path == str(tree)
                assert nav.selected == 1

        asyncio.run(run())

    def test_delete_with_confirmation(self, tree, cache, settings):
        nav = Navigator(tree, cache, settings)

        async def run():
            app = DiskDiveApp(nav)
            async with app.run_test() as pilot:
                await _settle(app, pilot)

                await pilot.press("d")
                await pilot.pause()
                assert isinstance(app.screen, ConfirmDeleteScreen)

                await pilot.press("y")
                await _settle(app, pilot)
                assert not (tree / "big").exists()
                assert "big" not in [e.name for e in nav.entries]

        asyncio.run(run())

    def test_delete_cancelled(self, tree, cache, settings):
        nav = Navigator(tree, cache, settings)

        async def run():
            app = DiskDiveApp(nav)
            async with app.run_test() as pilot:
                await _settle(app, pilot)
                await pilot.press("d")
                await pilot.pause()
                await pilot.press("n")
                await pilot.pause()
                assert nav.state is ViewState.BROWSING
                assert (tree / "big").exists()

        asyncio.run(run())
