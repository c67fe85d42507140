from .bvcs import bvcs
from .bvlag import bvlag
from .bvtcg import bvtcg
from .utils import rot, rotg

__all__ = ['bvcs', 'bvlag', 'bvtcg', 'rot', 'rotg']
