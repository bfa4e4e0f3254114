import logging
import os
import os.path


def configure() -> None:
    """
    Configures logging in unit tests. To be invoked in module `__main__`.
    """

    logger = logging.getLogger()
    logger.setLevel(logging.DEBUG)

    ch = logging.FileHandler(os.path.join(os.path.dirname(__file__), "test.log"), "w")
    ch.setLevel(logging.DEBUG)
    logger.addHandler(ch)
