import logging

from app.config import Config
from app.factory import create_app

logger = logging.getLogger(__name__)

DEMO_OFFICIAL = "DEMO-OFFICIAL-001"


def main():
    app = create_app()

    # Create a demo official key pair and certificate
    app.extensions["document_verifier"].enroll_user(DEMO_OFFICIAL, username="Demo Official")
    logger.info("Demo keys generated for %s", DEMO_OFFICIAL)

    app.run(host=Config.HOST, port=Config.PORT, debug=False)


if __name__ == "__main__":
    main()
