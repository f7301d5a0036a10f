"""statement-doctor: schema inference and value normalization for bank statement exports."""

__version__ = "0.1.0"
