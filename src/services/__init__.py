"""
Services module: poll orchestration and server wiring
"""

from .power_monitor import PowerMonitorServer, PollOrchestrator, NoDevicesConfigured

__all__ = ['PowerMonitorServer', 'PollOrchestrator', 'NoDevicesConfigured']
