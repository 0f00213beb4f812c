"""
Tests for RankingEngine.

Focus on the boundary operations, declined input, undo exactness and
invariants that must hold over a whole session.
"""

import pytest

from image_tournament.choosers.sim_chooser import SimulatedChooser
from image_tournament.engine import EngineConfig, RankingEngine
from image_tournament.exceptions import InvalidActionError
from image_tournament.models import ImageSource, ItemStatus, Phase, SessionStatus
from image_tournament.session import REASON_INSUFFICIENT, REASON_MANUAL, REASON_REPEATED_SKIP


def make_sources(count: int) -> list[ImageSource]:
    return [
        ImageSource(item_id=f"img_{i:02d}", name=f"img_{i:02d}.png", image_ref=f"/images/img_{i:02d}.png")
        for i in range(count)
    ]


def make_engine(count: int, seed: int = 7) -> RankingEngine:
    engine = RankingEngine(EngineConfig(seed=seed))
    engine.initialize_items(make_sources(count))
    return engine


class TestRankingEngine:
    """Test RankingEngine behavior through public interface."""

    def test_start_requires_two_items(self) -> None:
        engine = make_engine(1)

        with pytest.raises(InvalidActionError):
            engine.start_session()
        assert engine.status is SessionStatus.IDLE

    def test_start_session_presents_exploration_group(self) -> None:
        # Arrange
        engine = make_engine(8)

        # Act
        engine.start_session()

        # Assert
        assert engine.status is SessionStatus.RUNNING
        assert engine.phase is Phase.EXPLORATION
        assert len(engine.current_group) == 6
        assert engine.progress == 0
        assert engine.active_count == 8
        assert engine.total_actions == 0
        assert not engine.can_undo

    def test_choice_outside_group_is_declined(self) -> None:
        """An unknown winner raises and leaves every counter untouched."""
        # Arrange
        engine = make_engine(8)
        engine.start_session()
        outsider = next(
            item.item_id for item in engine.items()
            if item.item_id not in {member.item_id for member in engine.current_group}
        )
        items_before = engine.items()

        # Act / Assert
        with pytest.raises(InvalidActionError):
            engine.record_choice(outsider)
        assert engine.total_actions == 0
        assert not engine.can_undo
        assert engine.items() == items_before

    def test_actions_require_running_session(self) -> None:
        engine = make_engine(4)

        with pytest.raises(InvalidActionError):
            engine.record_choice("img_00")
        with pytest.raises(InvalidActionError):
            engine.record_skip()
        with pytest.raises(InvalidActionError):
            _ = engine.request_early_finish()

    def test_choice_updates_winner_and_losers(self) -> None:
        # Arrange
        engine = make_engine(8)
        engine.start_session()
        group = engine.current_group
        winner_id = group[0].item_id

        # Act
        engine.record_choice(winner_id)

        # Assert
        assert engine.get_item(winner_id).rating > 1500.0
        assert engine.get_item(winner_id).wins == 1
        for loser in group[1:]:
            assert engine.get_item(loser.item_id).rating < 1500.0
            assert engine.get_item(loser.item_id).view_count == 1
        assert engine.total_actions == 1
        assert engine.can_undo
        assert winner_id not in {item.item_id for item in engine.current_group}, "No immediate rematch"

    def test_three_skips_end_the_session(self) -> None:
        # Arrange
        engine = make_engine(12)
        engine.start_session()

        # Act
        engine.record_skip()
        engine.record_skip()
        assert engine.status is SessionStatus.RUNNING
        assert engine.global_pass_streak == 2
        engine.record_skip()

        # Assert
        assert engine.status is SessionStatus.FINISHED
        assert engine.finish_reason == REASON_REPEATED_SKIP
        assert engine.current_group == []
        assert engine.results_ready

    def test_choice_resets_pass_streak(self) -> None:
        engine = make_engine(12)
        engine.start_session()

        engine.record_skip()
        engine.record_choice(engine.current_group[0].item_id)

        assert engine.global_pass_streak == 0

    def test_skipped_twice_items_are_eliminated(self) -> None:
        """Three items shown together twice are all eliminated, ending the session."""
        # Arrange
        engine = make_engine(3)
        engine.start_session()

        # Act
        engine.record_skip()
        engine.record_skip()

        # Assert
        assert all(item.status is ItemStatus.ELIMINATED for item in engine.items())
        assert engine.status is SessionStatus.FINISHED
        assert engine.finish_reason == REASON_INSUFFICIENT

    def test_undo_restores_state_before_each_action(self) -> None:
        """Undo walks back item-for-item and counter-for-counter."""
        # Arrange
        engine = make_engine(10, seed=11)
        engine.start_session()
        checkpoints = []

        for step in range(6):
            checkpoints.append(
                (engine.items(), engine.total_actions, engine.global_pass_streak, engine.stalemate_counter, engine.phase)
            )
            if step == 2:
                engine.record_skip()
            else:
                engine.record_choice(engine.current_group[-1].item_id)

        # Act / Assert
        for items, actions, streak, stalemate, phase in reversed(checkpoints):
            assert engine.undo_last()
            assert engine.items() == items
            assert engine.total_actions == actions
            assert engine.global_pass_streak == streak
            assert engine.stalemate_counter == stalemate
            assert engine.phase is phase
            assert len(engine.current_group) >= 2

        assert not engine.undo_last(), "History should be empty"

    def test_undo_without_history_is_noop(self) -> None:
        engine = make_engine(4)
        assert not engine.undo_last()

        engine.start_session()
        group_ids = [item.item_id for item in engine.current_group]

        assert not engine.undo_last()
        assert [item.item_id for item in engine.current_group] == group_ids

    def test_undo_reopens_finished_session(self) -> None:
        # Arrange
        engine = make_engine(12)
        engine.start_session()
        for _ in range(3):
            engine.record_skip()

        # Act
        restored = engine.undo_last()

        # Assert
        assert restored
        assert engine.status is SessionStatus.RUNNING
        assert engine.total_actions == 2
        assert engine.global_pass_streak == 2
        assert len(engine.current_group) >= 2
        assert not engine.results_ready

    def test_early_finish_requires_a_view(self) -> None:
        # Arrange
        engine = make_engine(6)
        engine.start_session()

        # Act / Assert
        assert not engine.request_early_finish()
        assert engine.status is SessionStatus.RUNNING

        engine.record_choice(engine.current_group[0].item_id)
        assert engine.request_early_finish()
        assert engine.status is SessionStatus.FINISHED
        assert engine.finish_reason == REASON_MANUAL

    def test_quit_session_resets_everything(self) -> None:
        # Arrange
        engine = make_engine(6)
        engine.start_session()
        engine.record_choice(engine.current_group[0].item_id)

        # Act
        engine.quit_session()

        # Assert
        assert engine.status is SessionStatus.IDLE
        assert engine.total_actions == 0
        assert engine.current_group == []
        assert not engine.can_undo
        for item in engine.items():
            assert item.rating == 1500.0 and item.sigma == 150.0
            assert item.view_count == 0 and item.wins == 0
            assert item.status is ItemStatus.ACTIVE

    def test_restart_resets_item_stats(self) -> None:
        engine = make_engine(6)
        engine.start_session()
        engine.record_choice(engine.current_group[0].item_id)
        _ = engine.request_early_finish()

        engine.start_session()

        assert all(item.view_count == 0 for item in engine.items())
        assert engine.total_actions == 0

    def test_items_cannot_change_while_running(self) -> None:
        engine = make_engine(4)
        engine.start_session()

        with pytest.raises(InvalidActionError):
            engine.initialize_items(make_sources(5))
        with pytest.raises(InvalidActionError):
            engine.remove_item("img_00")

    def test_accessors_do_not_mutate_state(self) -> None:
        # Arrange
        engine = make_engine(8)
        engine.start_session()
        engine.record_choice(engine.current_group[0].item_id)

        # Act
        first = (engine.items(), engine.current_group, engine.progress, engine.final_ranking(), engine.phase)
        second = (engine.items(), engine.current_group, engine.progress, engine.final_ranking(), engine.phase)

        # Assert
        assert first == second

    def test_accessors_return_copies(self) -> None:
        engine = make_engine(4)
        engine.start_session()
        member = engine.current_group[0]

        member.rating = 9999.0
        engine.items()[0].status = ItemStatus.ELIMINATED

        assert engine.get_item(member.item_id).rating == 1500.0
        assert engine.active_count == 4

    def test_final_ranking_covers_all_items_by_effective_rating(self) -> None:
        # Arrange
        engine = make_engine(8)
        engine.start_session()
        for _ in range(5):
            engine.record_choice(engine.current_group[0].item_id)

        # Act
        ranking = engine.final_ranking()

        # Assert
        assert len(ranking) == 8
        effective = [row["effective_rating"] for row in ranking]
        assert effective == sorted(effective, reverse=True)
        assert [row["rank"] for row in ranking] == list(range(1, 9))

    def test_finish_delay_pauses_before_results(self, monkeypatch: pytest.MonkeyPatch) -> None:
        # Arrange
        sleeps: list[float] = []
        monkeypatch.setattr("image_tournament.engine.time.sleep", sleeps.append)
        engine = RankingEngine(EngineConfig(finish_delay=0.6, seed=1))
        engine.initialize_items(make_sources(12))
        engine.start_session()

        # Act
        for _ in range(3):
            engine.record_skip()

        # Assert
        assert sleeps == [0.6]
        assert engine.results_ready

    def test_negative_finish_delay_rejected(self) -> None:
        with pytest.raises(ValueError):
            _ = EngineConfig(finish_delay=-1.0)

    def test_invariants_hold_over_simulated_session(self) -> None:
        """Sigma floor, status monotonicity and group composition over a whole run."""
        # Arrange
        engine = make_engine(20, seed=3)
        ground_truth = {f"img_{i:02d}": float(i + 1) for i in range(20)}
        chooser = SimulatedChooser(ground_truth, noise=0.3, skip_threshold=4.0, seed=3)
        engine.start_session()
        resolved = dict[str, ItemStatus]()
        last_winner: str | None = None

        # Act / Assert
        for _ in range(400):
            if engine.status is not SessionStatus.RUNNING:
                break

            group = engine.current_group
            group_ids = {item.item_id for item in group}
            target = 4 if engine.phase is Phase.PRECISION else 6
            assert 2 <= len(group) <= min(6, engine.active_count)
            assert all(item.is_active for item in group)
            if last_winner is not None and engine.get_item(last_winner).is_active and engine.active_count - 1 >= target:
                assert last_winner not in group_ids

            decision = chooser.choose(group)
            if decision.winner_id is None:
                engine.record_skip()
                last_winner = None
            else:
                engine.record_choice(decision.winner_id)
                last_winner = decision.winner_id

            for item in engine.items():
                assert item.sigma >= 5.0
                if item.item_id in resolved:
                    assert item.status is resolved[item.item_id], f"{item.item_id} left {resolved[item.item_id].value}"
                elif not item.is_active:
                    resolved[item.item_id] = item.status

        assert engine.status is SessionStatus.FINISHED, "Session should reach a stopping condition"
