"""
Google OAuth sign-in for Search Console access
"""
import logging
import requests
import streamlit as st
from google_auth_oauthlib.flow import Flow
from google.oauth2.credentials import Credentials
from typing import Any, Dict, List, Optional, Tuple

from auth.credentials import CredentialManager
from config.settings import ALL_SCOPES, USERINFO_URL

logger = logging.getLogger(__name__)

REQUIRED_SECRETS = ["client_id", "client_secret", "redirect_uri"]


class GoogleAuthManager:
    """Handles the Google OAuth web flow using values from Streamlit secrets"""

    KEY_ALIASES = {
        "client_id": ["client_id", "GOOGLE_CLIENT_ID", "clientId"],
        "client_secret": ["client_secret", "GOOGLE_CLIENT_SECRET", "clientSecret"],
        "redirect_uri": ["redirect_uri", "GOOGLE_REDIRECT_URI", "redirectUri", "redirect_url"]
    }

    def __init__(self, scopes: List[str] = None):
        self.scopes = scopes or ALL_SCOPES

    def _get_secret_value(self, key: str) -> Optional[str]:
        """Look up a secret under [google] first, then at the root"""
        aliases = self.KEY_ALIASES.get(key, [key])

        if "google" in st.secrets:
            for alias in aliases:
                if alias in st.secrets["google"]:
                    return st.secrets["google"][alias]

        for alias in aliases:
            if alias in st.secrets:
                return st.secrets[alias]

        return None

    def missing_secrets(self) -> List[str]:
        return [key for key in REQUIRED_SECRETS if self._get_secret_value(key) is None]

    def _build_flow(self) -> Flow:
        client_config = {
            "web": {
                "client_id": self._get_secret_value("client_id"),
                "client_secret": self._get_secret_value("client_secret"),
                "auth_uri": "https://accounts.google.com/o/oauth2/auth",
                "token_uri": "https://oauth2.googleapis.com/token",
                "redirect_uris": [self._get_secret_value("redirect_uri")]
            }
        }
        return Flow.from_client_config(
            client_config,
            scopes=self.scopes,
            redirect_uri=self._get_secret_value("redirect_uri")
        )

    def get_auth_url(self) -> Tuple[str, Flow]:
        flow = self._build_flow()
        auth_url, _ = flow.authorization_url(
            access_type='offline',
            include_granted_scopes='true',
            prompt='consent'
        )
        return auth_url, flow

    def get_credentials_from_code(self, auth_code: str) -> Optional[Credentials]:
        """Exchange an authorization code for credentials"""
        try:
            flow = self._build_flow()
            flow.fetch_token(code=auth_code)
            return flow.credentials
        except Exception as e:
            logger.error("Authorization code exchange failed: %s", e)
            st.error(f"Error exchanging code for credentials: {str(e)}")
            return None

    @staticmethod
    def get_user_info(credentials: Credentials) -> Dict[str, Any]:
        """Profile of the signed-in user (name, email, picture)"""
        response = requests.get(
            USERINFO_URL,
            headers={'Authorization': f'Bearer {credentials.token}'},
            timeout=10
        )
        response.raise_for_status()
        return response.json()

    def render_auth_ui(self) -> Optional[Credentials]:
        """Render sign-in UI and complete the OAuth redirect"""
        auth_code = st.query_params.get("code")
        credentials = CredentialManager.load_credentials()

        if auth_code and not credentials:
            with st.spinner("Processing authorization..."):
                credentials = self.get_credentials_from_code(auth_code)
                if credentials:
                    CredentialManager.save_credentials(credentials)
                    st.query_params.clear()
                    st.rerun()

        if credentials:
            return credentials

        st.markdown("### 🔐 Sign in")

        missing = self.missing_secrets()
        if missing:
            st.error(f"⚠️ Google OAuth credentials not configured. Missing: **{', '.join(missing)}**")
            st.code("""[google]
client_id = "your-client-id.apps.googleusercontent.com"
client_secret = "your-client-secret"
redirect_uri = "https://your-app.streamlit.app/"
            """, language="toml")
            return None

        st.info("Sign in with the Google account that has access to your Search Console properties.")

        if st.button("🔑 Sign in with Google", type="primary"):
            auth_url, _ = self.get_auth_url()
            st.session_state["auth_url"] = auth_url

        if "auth_url" in st.session_state:
            st.markdown(f"🔗 [Authorize Access]({st.session_state['auth_url']})")

        return None
