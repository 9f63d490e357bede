from floodguard.recent import RecentEventLog


def test_messages_are_newest_first_with_insertion_order() -> None:
    log = RecentEventLog(retention=300)
    log.append("first", 0)
    log.append("second", 1)
    log.append("third", 2)

    assert log.recent_messages(2) == [("third", 2), ("second", 1), ("first", 0)]


def test_old_messages_drop_out() -> None:
    log = RecentEventLog(retention=60)
    log.append("old", 0)
    log.append("new", 50)

    assert log.recent_messages(100) == [("new", 1)]
    assert log.recent_messages(100, max_age=10) == []


def test_limit_keeps_newest() -> None:
    log = RecentEventLog(retention=60)
    for i in range(5):
        log.append(f"m{i}", i)
    assert [m for m, _ in log.recent_messages(5, limit=2)] == ["m4", "m3"]
