"""Unit tests for endpoint classification."""

from __future__ import annotations

import pytest

from reachability.probing.classifier import classify


class TestUdpClass:
    @pytest.mark.parametrize(
        "target",
        [
            "stun:stun.l.google.com:19302",
            "turn:relay.example.com:3478",
            "turns:relay.example.com:5349",
            "ntp.example.org",
            "time.windows.com",
            "0.pool.ntp.org",
            "time.nist.gov",
            "clock.example.com:123",
            "udp://collector.example.com:514",
            "my-udp-relay.example.com",
        ],
    )
    def test_udp_class_targets(self, target: str) -> None:
        assert classify(target).is_udp_class is True

    @pytest.mark.parametrize(
        "target",
        [
            "login.microsoftonline.com",
            "https://manage.microsoft.com",
            "http://example.com/path",
            "203.0.113.5",
            "example.com:443",
            "example.com:1234",
            "notime.windows.com.example.net",
            "antpool.example.com",
        ],
    )
    def test_http_class_targets(self, target: str) -> None:
        assert classify(target).is_udp_class is False

    def test_udp_only_suffix_respects_label_boundary(self) -> None:
        assert classify("mytime.windows.com").is_udp_class is False
        assert classify("eu.time.windows.com").is_udp_class is True


class TestScheme:
    def test_host_port_is_not_a_scheme(self) -> None:
        c = classify("example.com:8080")
        assert c.scheme is None
        assert c.hostname == "example.com"
        assert c.is_http_capable is True

    def test_scheme_without_authority(self) -> None:
        c = classify("stun:stun.example.com:3478")
        assert c.scheme == "stun"
        assert c.hostname == "stun.example.com"
        assert c.is_http_capable is False

    def test_scheme_is_lowercased(self) -> None:
        assert classify("HTTPS://Example.com").scheme == "https"

    def test_unknown_scheme_is_not_http_capable(self) -> None:
        c = classify("ftp://files.example.com")
        assert c.scheme == "ftp"
        assert c.is_udp_class is False
        assert c.is_http_capable is False


class TestIpLiteral:
    @pytest.mark.parametrize(
        "target",
        ["203.0.113.5", "https://10.0.0.1", "http://192.168.1.1:8080/x"],
    )
    def test_ip_literals(self, target: str) -> None:
        assert classify(target).is_ip_literal is True

    def test_hostname_is_not_ip_literal(self) -> None:
        assert classify("www.example.com").is_ip_literal is False


class TestMalformedInput:
    @pytest.mark.parametrize("target", ["", "   ", "http://[::1", "://"])
    def test_malformed_input_degrades_to_http_class(self, target: str) -> None:
        c = classify(target)
        assert c.is_udp_class is False
        assert c.is_ip_literal is False
