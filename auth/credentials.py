"""
Credential storage for Google OAuth in the Streamlit session
"""
import logging
import streamlit as st
from google.auth.exceptions import RefreshError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from typing import Optional

logger = logging.getLogger(__name__)


class CredentialManager:
    """Keeps the signed-in user's OAuth token in session state"""

    CREDENTIALS_KEY = "google_credentials"
    USER_INFO_KEY = "user_info"

    @classmethod
    def save_credentials(cls, credentials: Credentials) -> None:
        st.session_state[cls.CREDENTIALS_KEY] = {
            "token": credentials.token,
            "refresh_token": credentials.refresh_token,
            "token_uri": credentials.token_uri,
            "client_id": credentials.client_id,
            "client_secret": credentials.client_secret,
            "scopes": list(credentials.scopes) if credentials.scopes else []
        }

    @classmethod
    def load_credentials(cls) -> Optional[Credentials]:
        """
        Stored credentials, refreshed when expired

        A token that can no longer be refreshed is discarded so the user is
        sent back through sign-in.
        """
        creds_dict = st.session_state.get(cls.CREDENTIALS_KEY)
        if not creds_dict:
            return None

        credentials = Credentials(**creds_dict)

        if credentials.expired and credentials.refresh_token:
            try:
                credentials.refresh(Request())
            except RefreshError as e:
                logger.warning("Discarding credentials that failed to refresh: %s", e)
                cls.clear_credentials()
                st.warning("Your Google session expired. Please sign in again.")
                return None
            cls.save_credentials(credentials)

        return credentials

    @classmethod
    def clear_credentials(cls) -> None:
        for key in (cls.CREDENTIALS_KEY, cls.USER_INFO_KEY):
            if key in st.session_state:
                del st.session_state[key]
