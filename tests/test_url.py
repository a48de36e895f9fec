from plg.utils.url import registrable_domain, split_host, with_scheme


def test_with_scheme_only_when_missing():
    assert with_scheme("example.com") == "https://example.com"
    assert with_scheme("http://example.com") == "http://example.com"


def test_registrable_domain_multi_part_suffix():
    assert registrable_domain("https://www.shop.example.co.uk/path?q=1") == "example.co.uk"


def test_registrable_domain_without_scheme_is_lower_cased():
    assert registrable_domain("Login.Example.COM/account") == "example.com"


def test_private_suffix_is_its_own_scope():
    assert registrable_domain("https://a.b.evil.github.io") == "evil.github.io"


def test_split_host_keeps_full_host():
    assert split_host("http://a.b.example.com:8080/x") == ("a.b.example.com", "example.com")


def test_host_outside_public_suffix_used_as_is():
    assert registrable_domain("http://192.168.0.1:8080/admin") == "192.168.0.1"
    assert registrable_domain("http://localhost/") == "localhost"


def test_unparseable_input_falls_back_to_raw():
    assert split_host("http://[::1") == (None, "http://[::1")
    assert registrable_domain("") == ""


def test_non_string_never_raises():
    assert split_host(None) == (None, "")
