class DpBrowserError(Exception):
    """Base exception for all dp_browser errors"""
    pass

class ConfigError(DpBrowserError):
    """Invalid or inconsistent global.json / dataset config file"""
    pass

class DatasetParseError(DpBrowserError):
    """
    Raw dataset content could not be parsed as JSON
    (uploaded blob, stored file or edited text)
    """
    pass

class UnknownDatasetError(DpBrowserError, KeyError):
    """No data source registered under the given id"""
    pass
