"""Smoke test to verify the toolchain works."""


def test_import_telemetry():
    """Verify the telemetry package can be imported."""
    import ac_shared_memory.telemetry

    assert ac_shared_memory.telemetry is not None


def test_public_api_exported():
    """Verify the documented public names are importable from the package."""
    from ac_shared_memory.telemetry import AssettoCorsa, NotConnectedError, TelemetryConfig

    assert AssettoCorsa is not None
    assert NotConnectedError is not None
    assert TelemetryConfig is not None
