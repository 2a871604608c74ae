import logging

LOG_FORMAT = "%(asctime)s - %(name)-8s - %(levelname)-8s - %(message)s"


def setup_logging(level=logging.INFO, log_file=None):
    handlers = [logging.StreamHandler()]
    if log_file:
        handlers.append(logging.FileHandler(log_file, mode="a"))
    logging.basicConfig(level=level, format=LOG_FORMAT, handlers=handlers, force=True)
