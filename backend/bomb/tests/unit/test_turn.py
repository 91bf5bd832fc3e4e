from bomb.logic.turn import eligible_count, first_eligible, is_eligible, next_eligible, previous_eligible


class TestIsEligible:
    def test_below_four_letters_is_eligible(self):
        assert is_eligible(0)
        assert is_eligible(3)

    def test_four_letters_is_eliminated(self):
        assert not is_eligible(4)


class TestNextEligible:
    def test_steps_to_following_player(self):
        assert next_eligible([0, 0, 0], 0) == 1

    def test_wraps_around(self):
        assert next_eligible([0, 0, 0], 2) == 0

    def test_skips_eliminated_players(self):
        assert next_eligible([0, 4, 4, 1], 0) == 3

    def test_skip_and_wrap(self):
        assert next_eligible([0, 2, 4], 1) == 0

    def test_only_eligible_player_returns_itself(self):
        assert next_eligible([4, 1, 4], 1) == 1

    def test_nobody_eligible_returns_none(self):
        assert next_eligible([4, 4], 0) is None

    def test_starting_from_eliminated_player(self):
        """A player who just got eliminated still hands the turn forward from their index."""
        assert next_eligible([0, 4, 0], 1) == 2


class TestPreviousEligible:
    def test_steps_to_preceding_player(self):
        assert previous_eligible([0, 0, 0], 2) == 1

    def test_wraps_around_backwards(self):
        assert previous_eligible([0, 0, 0], 0) == 2

    def test_skips_eliminated_players(self):
        assert previous_eligible([1, 4, 4, 0], 3) == 0

    def test_nobody_eligible_returns_none(self):
        assert previous_eligible([4, 4, 4], 1) is None


class TestFirstEligible:
    def test_first_player_when_eligible(self):
        assert first_eligible([0, 0]) == 0

    def test_skips_leading_eliminated(self):
        assert first_eligible([4, 0]) == 1

    def test_empty_roster(self):
        assert first_eligible([]) is None


def test_eligible_count():
    assert eligible_count([0, 4, 3, 4]) == 2
