"""Sistema KG do Amor: cell donations, stock receipts and withdrawals."""
__version__ = "1.0.0"
