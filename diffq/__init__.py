"""Differentiated-services queueing: packet filters, traffic classes, SPQ and DRR schedulers, and throughput plotting."""

__version__ = "0.1.0"