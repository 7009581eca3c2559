import logging

from drivedesk import models  # noqa: F401
from drivedesk.db import Base, engine


logging.basicConfig(level=logging.INFO, format='%(asctime)s %(levelname)s %(name)s %(message)s')
logger = logging.getLogger('bootstrap')


def main():
    Base.metadata.create_all(bind=engine)
    logger.info('Bootstrap executed: tables=%s', sorted(Base.metadata.tables))


if __name__ == '__main__':
    main()
