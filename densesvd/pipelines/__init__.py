from collections import OrderedDict

from .mpi import MessagePassingProfile
from .pipeline import execute, run_pipeline
from .shared import SharedMemoryProfile

PROFILES = OrderedDict([
    (SharedMemoryProfile.name, SharedMemoryProfile),
    (MessagePassingProfile.name, MessagePassingProfile),
])
