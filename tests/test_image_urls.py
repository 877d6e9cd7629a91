import pytest

from minisocial.image_urls import is_absolute_url, is_local_host, normalize_image_url

ORIGIN = "https://api.minisocial.app"


def test_public_url_is_unchanged():
    url = "https://res.cloudinary.com/demo/image/upload/v1/minisocial_posts/cat.png"
    assert normalize_image_url(url, ORIGIN) == url


@pytest.mark.parametrize(
    "stored,expected",
    [
        ("http://localhost:5000/uploads/cat.png", "https://api.minisocial.app/uploads/cat.png"),
        ("http://127.0.0.1:8000/uploads/cat.png?v=2", "https://api.minisocial.app/uploads/cat.png?v=2"),
        ("http://[::1]/uploads/cat.png", "https://api.minisocial.app/uploads/cat.png"),
        ("http://0.0.0.0:8000/uploads/a.jpg#top", "https://api.minisocial.app/uploads/a.jpg#top"),
        ("http://api.localhost/uploads/a.jpg", "https://api.minisocial.app/uploads/a.jpg"),
    ],
)
def test_loopback_url_moves_to_current_origin(stored, expected):
    assert normalize_image_url(stored, ORIGIN) == expected


@pytest.mark.parametrize(
    "stored",
    [
        None,
        "",
        "uploads/cat.png",
        "/uploads/cat.png",
        "C:\\Users\\dev\\uploads\\cat.png",
        "file:///var/data/cat.png",
        "ftp://example.com/cat.png",
        "http://",
    ],
)
def test_unresolvable_reference_is_suppressed(stored):
    assert normalize_image_url(stored, ORIGIN) is None


def test_origin_port_is_kept():
    assert (
        normalize_image_url("http://localhost/uploads/x.png", "http://10.0.0.5:8080")
        == "http://10.0.0.5:8080/uploads/x.png"
    )


def test_local_host_detection():
    assert is_local_host("localhost")
    assert is_local_host("LOCALHOST.")
    assert is_local_host("127.0.0.2")
    assert not is_local_host("10.0.0.5")
    assert not is_local_host("example.com")


def test_absolute_url_detection():
    assert is_absolute_url("https://example.com/a.png")
    assert not is_absolute_url("example.com/a.png")
    assert not is_absolute_url("http://[broken/a.png")
