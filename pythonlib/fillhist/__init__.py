from .errors import *
from .axis import Axis, UniformAxis, VariableAxis, REJECTED, make_axis
from .indexer import FlatIndexer
from .storage import (
    EMPTY,
    BinKind,
    BinStorage,
    FloatStorage,
    IntStorage,
    GenericStorage,
    make_storage,
)
from .histogram import Histogram, FillStatus
from .merging.merge import merge_state_list, merge_two_states, merge_histograms
from .parallel import fill_parallel, SynchronizedHistogram
from .config import load_config, histograms_from_config

__all__ = [name for name in dir() if not name.startswith("_")]
