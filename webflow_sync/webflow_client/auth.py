"""Authentication module for loading Webflow credentials.

This module handles loading Webflow credentials from environment variables
using python-dotenv. It validates that all required credentials are present
and raises MissingCredentialsError listing every missing variable.
"""

import os
from typing import NamedTuple

from dotenv import load_dotenv

from .errors import MissingCredentialsError

DEFAULT_API_URL = "https://api.webflow.com/v2"


class Credentials(NamedTuple):
    """Webflow API credentials."""
    api_url: str
    collection_id: str
    token: str


class Authenticator:
    """Loads and validates Webflow credentials from environment variables.

    Credentials are loaded from a .env file using python-dotenv (variables
    already present in the environment win, which is what CI secrets rely
    on) and are never cached or logged.

    Required environment variables:
        WEBFLOW_TOKEN: Site API token (WEBFLOW_API_KEY is accepted as an alias)
        WEBFLOW_COLLECTION_ID: ID of the CMS collection that receives posts

    Optional:
        WEBFLOW_API_URL: Override of the Data API base URL

    Example:
        >>> auth = Authenticator()
        >>> creds = auth.get_credentials()
        >>> print(f"Syncing into collection {creds.collection_id}")
    """

    def __init__(self, env_file: str = ".env"):
        """Initialize the authenticator by loading environment variables.

        Args:
            env_file: Path of the dotenv file to load if it exists
        """
        load_dotenv(env_file)

    def get_credentials(self) -> Credentials:
        """Get Webflow credentials from environment variables.

        Returns:
            Credentials: A named tuple containing api_url, collection_id and token

        Raises:
            MissingCredentialsError: If any required credential is missing
        """
        token = os.getenv('WEBFLOW_TOKEN') or os.getenv('WEBFLOW_API_KEY')
        collection_id = os.getenv('WEBFLOW_COLLECTION_ID')
        api_url = os.getenv('WEBFLOW_API_URL') or DEFAULT_API_URL

        missing = []
        if not token:
            missing.append('WEBFLOW_TOKEN')
        if not collection_id:
            missing.append('WEBFLOW_COLLECTION_ID')

        if missing:
            raise MissingCredentialsError(missing)

        return Credentials(
            api_url=api_url.rstrip('/'),
            collection_id=collection_id,  # type: ignore[arg-type]
            token=token,  # type: ignore[arg-type]
        )
