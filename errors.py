#!/usr/bin/env python3
"""
Error types raised by the filing pipeline
"""


class FilingMonitorError(Exception):
    """Base class for pipeline errors"""


class ConfigurationError(FilingMonitorError):
    """Required configuration is missing; fatal at startup"""


class FetchFailure(FilingMonitorError):
    """The disclosure source could not be reached"""


class ExtractionFailure(FilingMonitorError):
    """A document could not be turned into a structured record"""


class ValidationRejection(FilingMonitorError):
    """An extracted record did not match the reference filing"""


class PersistenceFailure(FilingMonitorError):
    """A record could not be written to the store"""


class DeliveryFailure(FilingMonitorError):
    """An event could not be written to a subscriber channel"""
