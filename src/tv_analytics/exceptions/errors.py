class TVAnalyticsError(Exception):
    """Base exception for tv_analytics."""

class ConfigurationError(TVAnalyticsError, ValueError):
    pass

class DataIngestionError(TVAnalyticsError):
    pass

class SchemaValidationError(TVAnalyticsError):
    pass

class DataQualityError(TVAnalyticsError):
    pass

class QueryExecutionError(TVAnalyticsError):
    pass

class PlotlyRenderError(TVAnalyticsError):
    pass

class ExportError(TVAnalyticsError):
    pass
