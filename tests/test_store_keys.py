import hashlib

from store import keys


def test_slug_consistency():
    v = "response-time"
    assert keys._slug(v) == hashlib.sha256(v.encode()).hexdigest()[:32]


def test_keys_format():
    assert keys.latest_output("kpi a") == f"ks:kpi:{keys._slug('kpi a')}:latest"
    assert keys.latest_output("a") != keys.latest_output("b")
