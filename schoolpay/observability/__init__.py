from .metrics import init_metrics, metrics_manager

__all__ = ["init_metrics", "metrics_manager"]
