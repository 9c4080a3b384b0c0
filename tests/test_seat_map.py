"""
tests.test_seat_map
~~~~~~~~~~~~~~~~~~~

SeatMap 座位表单元测试：越界、占用、换座与释放。
"""
from __future__ import annotations

import pytest

from theatre.services.seat_map import InvalidSeat, SeatMap, SeatOccupied


def assert_consistent(seats: SeatMap) -> None:
    """座位 → 占用者 与 占用者 → 座位 两个方向必须一致。"""
    occupied = seats.occupied()
    holders = list(occupied.values())
    assert len(holders) == len(set(holders)), "同一参与者占用了多个座位"
    for index, pid in occupied.items():
        assert seats.seat_of(pid) == index
    assert seats.occupied_count == len(occupied)


class TestSeatMap:
    """测试座位分配的互斥不变量。"""

    def test_new_map_is_empty(self) -> None:
        """新建座位表所有座位为空。"""
        seats = SeatMap(96)

        assert seats.capacity == 96
        assert seats.occupied() == {}
        assert seats.occupant(0) is None
        assert seats.occupant(95) is None

    def test_rejects_non_positive_capacity(self) -> None:
        with pytest.raises(ValueError):
            SeatMap(0)

    @pytest.mark.parametrize("index", [-1, 96, 1000, True])
    def test_out_of_range_index_is_invalid(self, index: int) -> None:
        """越界座位号应抛出 InvalidSeat，且不修改任何状态。"""
        seats = SeatMap(96)

        with pytest.raises(InvalidSeat) as exc_info:
            seats.assign("a", index)

        assert exc_info.value.reason == "InvalidSeat"
        assert seats.seat_of("a") is None
        assert seats.occupied() == {}

    def test_assign_returns_confirmed_index(self) -> None:
        seats = SeatMap(96)

        assert seats.assign("a", 5) == 5
        assert seats.occupant(5) == "a"
        assert seats.seat_of("a") == 5
        assert_consistent(seats)

    def test_occupied_seat_is_rejected_without_side_effects(self) -> None:
        """他人已占用的座位应抛出 SeatOccupied，原有分配保持不变。"""
        seats = SeatMap(96)
        seats.assign("a", 5)
        seats.assign("b", 7)

        with pytest.raises(SeatOccupied) as exc_info:
            seats.assign("b", 5)

        assert exc_info.value.reason == "SeatOccupied"
        assert seats.occupant(5) == "a"
        assert seats.seat_of("b") == 7
        assert_consistent(seats)

    def test_invalid_index_takes_priority_over_occupied(self) -> None:
        seats = SeatMap(4)
        seats.assign("a", 3)

        with pytest.raises(InvalidSeat):
            seats.assign("b", 4)

    def test_changing_seat_releases_previous_one(self) -> None:
        """换座时旧座位被释放，参与者始终只占一个座位。"""
        seats = SeatMap(96)
        seats.assign("a", 5)

        seats.assign("a", 10)

        assert seats.occupant(5) is None
        assert seats.occupant(10) == "a"
        assert seats.seat_of("a") == 10
        assert_consistent(seats)

    def test_reassigning_own_seat_is_noop(self) -> None:
        seats = SeatMap(96)
        seats.assign("a", 5)

        assert seats.assign("a", 5) == 5
        assert seats.occupied() == {5: "a"}

    def test_release_is_idempotent(self) -> None:
        """释放座位是幂等的，未入座时返回 None。"""
        seats = SeatMap(96)
        seats.assign("a", 5)

        assert seats.release("a") == 5
        assert seats.release("a") is None
        assert seats.release("nobody") is None
        assert seats.occupant(5) is None

    def test_released_seat_is_assignable_to_others(self) -> None:
        seats = SeatMap(96)
        seats.assign("a", 5)
        seats.release("a")

        assert seats.assign("b", 5) == 5
        assert_consistent(seats)
