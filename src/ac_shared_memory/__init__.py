"""Assetto Corsa shared memory telemetry reader."""
