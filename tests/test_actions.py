"""
Tests for recommended actions.
"""
from datetime import date, datetime

import pytest

from conftest import MARCH_2024, PROPERTY_ID, make_cost_settings, make_reservation
from connectors import InMemoryDataAccess
from engine import ImportFile, generate_actions, initialize

REPORTS = ("expanded_transactions", "reservations_financials", "channel_performance")


def healthy_access(reservations):
    access = InMemoryDataAccess()
    access.set_cost_settings(PROPERTY_ID, make_cost_settings())
    access.add_import_files(PROPERTY_ID, [
        ImportFile(report_type=r, status="processed", uploaded_at=datetime(2024, 3, 9)) for r in REPORTS
    ])
    access.add_reservations(PROPERTY_ID, reservations)
    return access


class TestGenerateActions:
    """Which problems become actions, and in what order."""

    def test_booking_only_property(self, booking_access):
        state = initialize(PROPERTY_ID, MARCH_2024, booking_access)
        actions = generate_actions(state)

        assert [a["type"] for a in actions] == ["data_health", "channel_mix", "ota_dependency"]
        ota = actions[-1]
        assert ota["priority"] == 2
        assert ota["impact"]["value"] == 450
        assert ota["impact"]["direction"] == "up"

    def test_data_health_steps_are_the_issues(self, booking_access):
        state = initialize(PROPERTY_ID, MARCH_2024, booking_access)
        health_action = generate_actions(state)[0]

        labels = [s["label"] for s in health_action["steps"]]
        assert "Missing expanded transaction report" in labels
        assert all(s["completed"] is False for s in health_action["steps"])

    def test_channel_mix_names_worst_channel(self, booking_access):
        state = initialize(PROPERTY_ID, MARCH_2024, booking_access)
        mix = next(a for a in generate_actions(state) if a["type"] == "channel_mix")

        assert mix["impact"]["value"] == 450
        assert mix["steps"][0]["label"] == "Reduce inventory on Booking.com"

    def test_healthy_direct_property_has_nothing_to_do(self):
        access = healthy_access([
            make_reservation(check_in=date(2024, 3, 5), check_out=date(2024, 3, 8),
                             revenue=30000.0, source="Direct"),
        ])
        state = initialize(PROPERTY_ID, MARCH_2024, access, as_of=date(2024, 3, 10))

        assert generate_actions(state) == []


class TestLossActions:
    """Loss-making reservations and the one-night pattern."""

    @pytest.fixture
    def state(self):
        access = healthy_access([
            make_reservation("BIG", check_in=date(2024, 3, 5), check_out=date(2024, 3, 8),
                             revenue=30000.0, source="Direct"),
            make_reservation("N1", check_in=date(2024, 3, 10), check_out=date(2024, 3, 11),
                             revenue=100.0, source="Direct"),
            make_reservation("N2", check_in=date(2024, 3, 12), check_out=date(2024, 3, 13),
                             revenue=100.0, source="Direct"),
        ])
        return initialize(PROPERTY_ID, MARCH_2024, access, as_of=date(2024, 3, 14))

    def test_unprofitable_reservations(self, state):
        action = next(a for a in generate_actions(state) if a["type"] == "profitability")
        fixed_per_room_day = 150000 / 30.44 / 10

        assert action["description"] == "2 reservations lost money in this period."
        assert action["impact"]["value"] == round(2 * (fixed_per_room_day - 100))
        assert action["impact"]["direction"] == "down"

    def test_one_night_pattern(self, state):
        action = next(a for a in generate_actions(state) if a["type"] == "pricing")

        assert "Direct" in action["description"]
        assert action["evidence"][0] == {"metric": "Reservations", "value": "2"}

    def test_single_one_night_loss_is_not_a_pattern(self):
        access = healthy_access([
            make_reservation("N1", check_in=date(2024, 3, 10), check_out=date(2024, 3, 11),
                             revenue=100.0, source="Direct"),
        ])
        state = initialize(PROPERTY_ID, MARCH_2024, access, as_of=date(2024, 3, 14))

        assert [a["type"] for a in generate_actions(state)] == ["profitability"]

    def test_sorted_by_priority(self, state):
        priorities = [a["priority"] for a in generate_actions(state)]

        assert priorities == sorted(priorities)
