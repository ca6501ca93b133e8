"""Hibrit envanter depolama katmanı ve kural tabanlı otomasyon motoru."""

__version__ = "0.1.0"
