from .errors import *
from .config import *
from .distributions import *
from .model import *
from .data import *
from .proposal import *
from .posterior import *
from .mcmc import *
from .summary import *
from .session import *
from .module import *
from .workflow import *
