from .exceptions import *
from .inputs import *
from .catalog import *
from .photon import *
from .observation import *

__version__ = '0.1'
