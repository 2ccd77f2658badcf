from .conv import date_key, parse_exchange_number, parse_timestamp, to_dec_strict

__all__ = ["date_key", "parse_exchange_number", "parse_timestamp", "to_dec_strict"]
