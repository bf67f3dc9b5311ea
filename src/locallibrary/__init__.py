from .config import Settings, get_settings
from .core import create_app
from .local import LocalLibrary, LocalStorage
from .services import AuthService, BookService
from .stores import BookStore, CredentialStore
