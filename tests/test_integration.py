"""
End-to-end tests wiring fetcher, chooser, storage and engine together.
"""

from collections.abc import Sequence
from pathlib import Path

import pytest
from typing_extensions import override

from image_tournament.__main__ import main
from image_tournament.choosers.sim_chooser import SimulatedChooser
from image_tournament.engine import EngineConfig, RankingEngine
from image_tournament.exceptions import ChooserError
from image_tournament.fetchers.directory_fetcher import DirectoryImageFetcher
from image_tournament.interfaces import Chooser
from image_tournament.models import Decision, ImageItem, SessionStatus
from image_tournament.orchestrator import Orchestrator, RunConfig
from image_tournament.storage.jsonl_storage import JSONLStorage


class FailingChooser(Chooser):
    @override
    def choose(self, group: Sequence[ImageItem]) -> Decision:
        raise ChooserError("model unavailable")


def make_images(root: Path, count: int) -> None:
    root.mkdir(parents=True, exist_ok=True)
    for i in range(count):
        _ = (root / f"img_{i:02d}.png").write_bytes(b"\x89PNG fake")


def make_orchestrator(tmp_path: Path, chooser: Chooser | None = None, budget: int = 500) -> tuple[Orchestrator, JSONLStorage]:
    images_dir = tmp_path / "images"
    make_images(images_dir, 10)
    fetcher = DirectoryImageFetcher(images_dir)
    if chooser is None:
        # Higher index is liked more
        chooser = SimulatedChooser({f"img_{i:02d}": float(i + 1) for i in range(10)}, noise=0.0, seed=5)
    storage = JSONLStorage(tmp_path / "out" / "decisions.jsonl", tmp_path / "out" / "results.json")
    orchestrator = Orchestrator(
        fetcher=fetcher,
        chooser=chooser,
        storage=storage,
        engine=RankingEngine(EngineConfig(seed=5)),
        config=RunConfig(budget=budget),
    )
    return orchestrator, storage


class TestOrchestrator:
    """Full runs through the public orchestrator interface."""

    def test_simulated_run_completes(self, tmp_path: Path) -> None:
        # Arrange
        orchestrator, storage = make_orchestrator(tmp_path)

        # Act
        ranking = orchestrator.run()

        # Assert
        assert orchestrator.engine.status is SessionStatus.FINISHED
        assert len(ranking) == 10
        assert [row["rank"] for row in ranking] == list(range(1, 11))
        assert "img_09" in [row["item_id"] for row in ranking[:3]]

        results = storage.load_results()
        assert results is not None
        assert results["total_actions"] == orchestrator.engine.total_actions
        assert storage.get_decision_count() == orchestrator.engine.total_actions

    def test_budget_finishes_early(self, tmp_path: Path) -> None:
        orchestrator, storage = make_orchestrator(tmp_path, budget=5)

        ranking = orchestrator.run()

        assert orchestrator.engine.finish_reason == "manual termination"
        assert orchestrator.engine.total_actions == 5
        assert len(ranking) == 10
        assert storage.get_decision_count() == 5

    def test_aborts_when_every_decision_fails(self, tmp_path: Path) -> None:
        orchestrator, storage = make_orchestrator(tmp_path, chooser=FailingChooser())

        with pytest.raises(RuntimeError):
            _ = orchestrator.run()

        assert orchestrator.failed_decisions == 4
        assert storage.get_decision_count() == 0


class TestCLI:
    """Run the command line entry point against a temporary directory."""

    def test_dummy_run_writes_outputs(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        # Arrange
        monkeypatch.chdir(tmp_path)
        images_dir = tmp_path / "images"
        make_images(images_dir, 8)
        output_dir = tmp_path / "out"

        # Act
        main(["--images-dir", str(images_dir), "--output-dir", str(output_dir), "--chooser", "dummy", "--seed", "1"])

        # Assert
        assert (output_dir / "results.json").exists()
        assert (output_dir / "decisions.jsonl").exists()
        links = sorted((output_dir / "ranked").iterdir())
        assert len(links) == 8
        assert all(link.is_symlink() for link in links)
        assert any(link.name.startswith("1_") for link in links)

    def test_missing_images_dir_exits(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.chdir(tmp_path)

        with pytest.raises(SystemExit) as exc_info:
            main(["--images-dir", str(tmp_path / "nope"), "--output-dir", str(tmp_path / "out")])

        assert exc_info.value.code == 1
