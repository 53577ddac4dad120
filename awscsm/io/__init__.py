from .csv_writer import CSV_HEADER, event_to_row, make_csv_handler

__all__ = ["CSV_HEADER", "event_to_row", "make_csv_handler"]
