"""Development entrypoint delegating to the application package."""

import os

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

from access_gate.main import create_app

app = create_app()


if __name__ == "__main__":
    app.run(host="0.0.0.0", port=int(os.getenv("PORT", "5050")), debug=True)
