"""Session state — token store and login/logout controller.

The controller lives in talentos.session.controller; it's not re-exported
here because it depends on talentos.client, which itself depends on the
store.
"""

from talentos.session.store import FileTokenStore, MemoryTokenStore, TokenStore

__all__ = ["FileTokenStore", "MemoryTokenStore", "TokenStore"]
