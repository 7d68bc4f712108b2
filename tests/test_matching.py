import itertools

from tabwife.config import FACETS, MatchConfig
from tabwife.matching import match_key, matches
from tabwife.models import Tab

URLS = [
    "https://example.com/a?x=1&y=2",
    "https://example.com/a?y=2&x=1",
    "https://www.example.com/a?x=1&y=2#frag",
    "https://example.com:8443/a",
    "http://example.com:80/a",
    "http://192.168.1.100/",
    "http://192.168.2.100/",
    "http://localhost:3000/app",
    "https://other.org/",
    "about:blank",
    "garbage",
]


def _tab(tab_id: int, url: str, window_id: int = 1) -> Tab:
    return Tab(id=tab_id, url=url, window_id=window_id)


def _configs():
    yield MatchConfig()
    for mode in ("relaxed", "normal", "strict", "exact", "domain", "subdomain", "path"):
        yield MatchConfig.from_mode(mode)
    for name in FACETS:
        yield MatchConfig.from_facets([name])


def test_matches_is_reflexive_for_valid_urls():
    for config in _configs():
        for url in URLS[:9]:
            tab = _tab(1, url)
            assert matches(tab, tab, config), (url, config)


def test_matches_is_symmetric():
    tabs = [_tab(i, url) for i, url in enumerate(URLS)]
    for config in _configs():
        for a, b in itertools.product(tabs, repeat=2):
            assert matches(a, b, config) == matches(b, a, config)


def test_matches_fails_closed_on_unparseable_urls():
    bad = _tab(1, "garbage")
    assert not matches(bad, bad, MatchConfig.from_mode("relaxed"))
    assert not matches(bad, _tab(2, "https://example.com"))
    assert match_key(bad) is None


def test_ip_hosts_never_collapse_under_domain_matching():
    config = MatchConfig.from_flags({"domain": True})

    assert not matches(_tab(1, "http://192.168.1.100"), _tab(2, "http://192.168.2.100"), config)
    assert not matches(_tab(1, "http://localhost"), _tab(2, "http://127.0.0.1"), config)


def test_default_port_is_normalized_before_comparison():
    config = MatchConfig.from_flags({"port": True, "domain": True, "path": True})

    assert matches(_tab(1, "http://example.com:80/a"), _tab(2, "http://example.com/a"), config)
    assert not matches(_tab(1, "http://example.com:8080/a"), _tab(2, "http://example.com/a"), config)


def test_query_is_compared_as_unordered_pairs():
    config = MatchConfig.from_mode("normal")

    assert matches(_tab(1, URLS[0]), _tab(2, URLS[1]), config)
    assert not matches(_tab(1, "https://example.com/a?x=1"), _tab(2, "https://example.com/a?x=1&x=1"), config)


def test_relaxed_mode_groups_subdomains_and_paths():
    config = MatchConfig.from_mode("relaxed")

    assert matches(_tab(1, "https://mail.google.com/u/0"), _tab(2, "https://docs.google.com/"), config)


def test_strict_mode_compares_fragment():
    config = MatchConfig.from_mode("strict")

    assert not matches(_tab(1, "https://example.com/a#one"), _tab(2, "https://example.com/a#two"), config)
    assert matches(_tab(1, "https://example.com/a#one"), _tab(2, "https://example.com/a#one"), config)


def test_legacy_domain_mode_compares_full_hostname():
    config = MatchConfig.from_mode("domain")

    assert matches(_tab(1, "https://www.example.com/a"), _tab(2, "https://www.example.com/b"), config)
    assert not matches(_tab(1, "https://www.example.com/a"), _tab(2, "https://api.example.com/a"), config)


def test_default_config_is_normal_preset():
    a = _tab(1, "https://example.com/a#x")
    b = _tab(2, "https://example.com/a#y")

    assert matches(a, b)
    assert match_key(a) == match_key(a, MatchConfig.from_mode("normal"))


def test_trailing_dot_hosts_do_not_share_a_root():
    config = MatchConfig.from_mode("relaxed")

    assert not matches(_tab(1, "https://google.com./"), _tab(2, "https://github.com./"), config)
    assert matches(_tab(1, "https://www.example.com./"), _tab(2, "https://example.com/"), config)


def test_ipv4_mapped_ipv6_hosts_never_collapse():
    config = MatchConfig.from_mode("relaxed")

    assert not matches(
        _tab(1, "http://[::ffff:10.0.1.1]/"), _tab(2, "http://[::ffff:192.168.1.1]/"), config
    )
