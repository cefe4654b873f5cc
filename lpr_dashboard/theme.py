"""
Theme Preference
Light/dark preference kept in a browser cookie
"""

from lpr_dashboard.constants import THEME_COOKIE_MAX_AGE, THEMES
from lpr_dashboard.error_handlers import validate_theme


class ThemeProvider:
    """
    Resolves and persists the theme for one browser

    Args:
        default_theme: Theme used when the cookie is missing or unknown
        storage_key: Cookie name
    """

    def __init__(self, default_theme='dark', storage_key='license-plate-recorder-theme'):
        self.default_theme = validate_theme(default_theme)
        self.storage_key = storage_key

    def resolve(self, cookies):
        """Theme stored in the request cookies, or the default"""
        theme = cookies.get(self.storage_key)
        if theme in THEMES:
            return theme
        return self.default_theme

    def persist(self, response, theme):
        """Validate and store a theme on the response"""
        theme = validate_theme(theme)
        response.set_cookie(
            self.storage_key,
            theme,
            max_age=THEME_COOKIE_MAX_AGE,
            samesite='Lax',
        )
        return theme

    @staticmethod
    def toggle(theme):
        return 'light' if theme == 'dark' else 'dark'
