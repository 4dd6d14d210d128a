"""Common error handling for all services"""

class ServiceError(Exception):
    """Base exception for all MinTik service errors"""
    pass

class ConfigError(ServiceError):
    """A configuration update was rejected by validation"""
    pass

class PersistenceError(ServiceError):
    """A data file could not be written or removed"""
    pass

class RunnerError(ServiceError):
    """The tick loop exhausted its error budget"""
    pass
