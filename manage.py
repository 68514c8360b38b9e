"""Management script for database migrations and billing maintenance"""

from dotenv import load_dotenv
from flask.cli import FlaskGroup

load_dotenv()

from schoolpay import create_app  # noqa: E402

cli = FlaskGroup(create_app=create_app)


if __name__ == "__main__":
    cli()
