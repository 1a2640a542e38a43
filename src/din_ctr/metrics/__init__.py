from din_ctr.metrics.ctr_metrics import accuracy, rocauc

__all__ = ["accuracy", "rocauc"]
