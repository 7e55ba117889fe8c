import pytest

from naza import slicebytepool
from naza.slicebytepool import (
    SharedSliceByte,
    SliceBucket,
    SliceBytePool,
    Status,
    StdPoolBucket,
    Strategy,
    down2power,
    new_shared_slice_byte,
    up2power,
    wrap_shared_slice_byte,
)


def test_default():
    slicebytepool.init(Strategy.MULTI_SLICE_POOL_BUCKET)
    buf = slicebytepool.get(1000)
    assert len(buf) == 1000
    slicebytepool.put(buf)
    assert slicebytepool.retrieve_status() == Status(
        get_count=1, put_count=1, hit_count=0, size_bytes=1024
    )


def test_multi_slice_pool():
    p = SliceBytePool(Strategy.MULTI_SLICE_POOL_BUCKET)
    buf = p.get(1)
    assert len(buf) == 1
    p.put(bytearray(1))
    buf = p.get(1)
    assert len(buf) == 1
    assert p.retrieve_status().hit_count == 1


def test_multi_std_pool():
    p = SliceBytePool(Strategy.MULTI_STD_POOL_BUCKET)
    buf = p.get(1000)
    assert len(buf) == 1000
    p.put(buf)
    buf = p.get(1000)
    assert len(buf) == 1000
    for _ in range(1000):
        buf = p.get(1000)
        p.put(buf)
    status = p.retrieve_status()
    assert status.get_count == 1002
    assert status.put_count == 1001


def test_reuse_restores_size_bytes():
    p = SliceBytePool()
    buf = p.get(3000)
    buf[0] = 7
    p.put(buf)
    again = p.get(3000)
    assert again[0] == 7
    assert p.retrieve_status() == Status(get_count=2, put_count=1, hit_count=1, size_bytes=0)


@pytest.mark.parametrize(
    "n, expected",
    [
        (0, 2), (1, 2), (2, 2), (3, 4), (4, 4), (5, 8), (6, 8), (7, 8), (8, 8), (9, 16),
        (1023, 1024), (1024, 1024), (1025, 2048),
        (1073741824 - 1, 1073741824), (1073741824, 1073741824),
        (1073741824 + 1, 1073741824 + 1),
        (2047483647 - 1, 2047483647 - 1), (2047483647, 2047483647),
    ],
)
def test_up2power(n, expected):
    assert up2power(n) == expected


@pytest.mark.parametrize(
    "n, expected",
    [
        (0, 2), (1, 2), (2, 2), (3, 2), (4, 4), (5, 4), (6, 4), (7, 4), (8, 8), (9, 8),
        (1023, 512), (1024, 1024), (1025, 1024),
        (1073741824 - 1, 1073741824 >> 1), (1073741824, 1073741824),
        (1073741824 + 1, 1073741824),
        (2047483647 - 1, 1073741824), (2047483647, 1073741824),
    ],
)
def test_down2power(n, expected):
    assert down2power(n) == expected


@pytest.mark.parametrize("bucket_type", [SliceBucket, StdPoolBucket])
def test_bucket_get_put(bucket_type):
    bucket = bucket_type()
    assert bucket.get(4) is None
    bucket.put(bytearray(b"abcdefgh"))
    buf = bucket.get(4)
    assert bytes(buf) == b"abcd"
    assert len(buf.obj) == 8
    assert bucket.get(4) is None


def test_bucket_rejects_oversized_get():
    bucket = SliceBucket()
    bucket.put(bytearray(2))
    with pytest.raises(ValueError):
        bucket.get(3)


def test_new_shared_slice_byte():
    pool = SliceBytePool(Strategy.MULTI_SLICE_POOL_BUCKET)
    ssb = new_shared_slice_byte(1000, pool=pool)
    assert len(ssb.core) == 1000
    ssb2 = ssb.ref()
    assert ssb2 is ssb

    ssb.release_if_needed()
    assert pool.retrieve_status().put_count == 0
    ssb2.release_if_needed()
    assert pool.retrieve_status().put_count == 1


def test_wrap_shared_slice_byte():
    b = bytearray(1000)
    pool = SliceBytePool(Strategy.MULTI_SLICE_POOL_BUCKET)
    ssb = wrap_shared_slice_byte(b, pool=pool)
    assert isinstance(ssb, SharedSliceByte)
    assert ssb.core is b
    ssb.release_if_needed()
    assert pool.retrieve_status().size_bytes == 1000