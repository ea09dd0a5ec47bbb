from .core import Credshift, get_session

__version__ = '0.3.0'
