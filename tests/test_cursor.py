import unittest

from trailwalk.cursor import NavigationCursor


class NavigationCursorTests(unittest.TestCase):
    def test_starts_before_first_item(self) -> None:
        cursor = NavigationCursor(3)
        self.assertEqual(cursor.position, -1)
        self.assertTrue(cursor.at_start())
        self.assertFalse(cursor.at_end())
        self.assertEqual(cursor.next_index(), 0)

    def test_advance_stops_at_end(self) -> None:
        cursor = NavigationCursor(2)
        self.assertTrue(cursor.advance())
        self.assertTrue(cursor.advance())
        self.assertTrue(cursor.at_end())
        self.assertFalse(cursor.advance())
        self.assertEqual(cursor.position, 1)

    def test_retreat_floor(self) -> None:
        cursor = NavigationCursor(3)
        cursor.advance()
        self.assertFalse(cursor.retreat())
        self.assertEqual(cursor.position, 0)
        self.assertTrue(cursor.retreat(past_start=True))
        self.assertEqual(cursor.position, -1)
        self.assertFalse(cursor.retreat(past_start=True))

    def test_seek_visits_every_intermediate_index(self) -> None:
        cursor = NavigationCursor(5)
        visited: list[int] = []

        def visit(index: int) -> bool:
            visited.append(index)
            return True

        self.assertEqual(cursor.seek(3, visit), 3)
        self.assertEqual(visited, [0, 1, 2, 3])
        visited.clear()
        self.assertEqual(cursor.seek(1, visit), 1)
        self.assertEqual(visited, [2, 1])

    def test_seek_stops_at_first_failed_hop(self) -> None:
        cursor = NavigationCursor(5)
        self.assertEqual(cursor.seek(4, lambda index: index < 2), 1)
        self.assertEqual(cursor.position, 1)

    def test_seek_out_of_range(self) -> None:
        cursor = NavigationCursor(2)
        with self.assertRaises(IndexError):
            cursor.seek(2, lambda _index: True)
        with self.assertRaises(IndexError):
            cursor.seek(-1, lambda _index: True)

    def test_empty_trail_is_at_end(self) -> None:
        cursor = NavigationCursor(0)
        self.assertTrue(cursor.at_end())
        self.assertFalse(cursor.advance())


if __name__ == "__main__":
    unittest.main()
