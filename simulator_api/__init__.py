"""Servicio simulador de dispositivos IoT."""

__version__ = "0.2.0"
