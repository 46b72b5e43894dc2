from . import metrics_factory

__all__ = ["metrics_factory"]
