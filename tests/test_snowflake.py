import threading

import pytest

from naza.snowflake import GenError, InitialError, Node, Option

TWEPOCH = 1288834974657


def test_new_and_gen_increasing():
    n = Node(0, 0)
    first = n.gen()
    second = n.gen()
    assert first > 0
    assert second > first


def test_negative():
    n = Node(0, 0)
    assert n.gen(TWEPOCH + (1 << 41)) < 0


def test_always_positive():
    n = Node(0, 0, always_positive=True)
    assert n.gen(TWEPOCH + (1 << 41)) == 0
    assert n.gen(TWEPOCH + (1 << 41) + 0x1234) >= 0


def test_sequence_within_same_millisecond():
    n = Node(0, 0)
    assert n.gen(TWEPOCH) == 0
    assert n.gen(TWEPOCH) == 1
    assert n.gen(TWEPOCH + 1) == 1 << 22


def test_ids_are_placed_by_shift():
    n = Node(1, 1)
    assert n.gen(TWEPOCH) == (1 << 17) | (1 << 12)


@pytest.mark.parametrize(
    "dc, worker, kwargs",
    [
        (0, 0, {"sequence_bits": 64}),
        (0, 0, {"worker_id_bits": 64}),
        (0, 0, {"data_center_id_bits": 64}),
        (0, 0, {"data_center_id_bits": 31, "worker_id_bits": 31, "sequence_bits": 31}),
        (100, 0, {"data_center_id_bits": 1}),
        (0, 100, {"worker_id_bits": 1}),
    ],
)
def test_err_initial(dc, worker, kwargs):
    with pytest.raises(InitialError):
        Node(dc, worker, **kwargs)


def test_err_gen():
    n = Node(0, 0)
    n.gen(2)
    with pytest.raises(GenError):
        n.gen(1)


def test_default_option():
    option = Option()
    assert option.twepoch == TWEPOCH
    assert (option.data_center_id_bits, option.worker_id_bits, option.sequence_bits) == (5, 5, 12)


def test_multithreaded_unique():
    n = Node(0, 0, sequence_bits=1)
    ids = []
    lock = threading.Lock()

    def worker():
        for _ in range(16):
            value = n.gen()
            with lock:
                ids.append(value)

    threads = [threading.Thread(target=worker) for _ in range(16)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert len(ids) == 16 * 16
    assert len(set(ids)) == 16 * 16

    last = n.gen()
    assert last > max(ids)