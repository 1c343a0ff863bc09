from collections import OrderedDict

from .svds import arpack_svds, lapack_svd, lobpcg_svds, propack_svds

SOLVERS = OrderedDict([
    ("lobpcg", lobpcg_svds),
    ("arpack", arpack_svds),
    ("propack", propack_svds),
    ("lapack", lapack_svd),
])
