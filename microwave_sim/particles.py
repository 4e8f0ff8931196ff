from .backend import xp, to_np, to_xp, zeros_like_shape

# state tags (int8 per particle); each device uses its own subset
NEUTRAL = 0
FAST = 1
SLOW = 2
DOMAIN = 3
ABSORBED = 4
FILLING = 5
EXTRACTING = 6
RETURNING = 7
TURNING = 8
HOLE = 9
ELECTRON = 10

STATE_NAMES = (
    "neutral", "fast", "slow", "domain", "absorbed", "filling",
    "extracting", "returning", "turning", "hole", "electron",
)

# float columns and the value a fresh / recycled row starts from
FLOAT_FIELDS = {
    "x": 0.0,
    "y": 0.0,
    "vx": 0.0,
    "vy": 0.0,
    "base_vx": 0.0,
    "base_y": 0.0,
    "r": 0.0,
    "theta": 0.0,
    "life": 1.0,
}
INT_FIELDS = {
    "state": (xp.int8, NEUTRAL),
    "stage": (xp.int16, -1),   # last interaction index (cavity number), -1 = none yet
}


class Particles:
    """
    Struct-of-arrays particle arena for the active device.

    Every column has one entry per particle; row i across all columns is one
    particle record. Rows are appended by inject(), overwritten in place by
    recycle(), compacted by remove() and dropped from the tail by truncate().
    """

    def __init__(self, dtype=xp.float64):
        self.dtype = dtype
        self.clear()

    def __len__(self):
        return int(self.x.shape[0])

    @property
    def Np(self):
        return len(self)

    def clear(self):
        for name in FLOAT_FIELDS:
            setattr(self, name, zeros_like_shape(0, dtype=self.dtype))
        for name, (dtype, _) in INT_FIELDS.items():
            setattr(self, name, xp.zeros(0, dtype=dtype))

    def _columns(self):
        return list(FLOAT_FIELDS) + list(INT_FIELDS)

    def _fresh(self, n, fields):
        cols = {}
        for name, default in FLOAT_FIELDS.items():
            col = xp.full(n, default, dtype=self.dtype)
            if name in fields:
                col[:] = to_xp(fields[name])
            cols[name] = col
        for name, (dtype, default) in INT_FIELDS.items():
            col = xp.full(n, default, dtype=dtype)
            if name in fields:
                col[:] = to_xp(fields[name])
            cols[name] = col
        return cols

    def _check_fields(self, fields):
        unknown = set(fields) - set(self._columns())
        if unknown:
            raise KeyError(f"unknown particle fields: {sorted(unknown)}")

    def inject(self, n, **fields):
        """Append n particles; unspecified fields take their defaults."""
        n = int(n)
        if n <= 0:
            return 0
        self._check_fields(fields)
        cols = self._fresh(n, fields)
        for name, col in cols.items():
            setattr(self, name, xp.concatenate((getattr(self, name), col)))
        return n

    def recycle(self, mask, **fields):
        """Overwrite the masked rows in place, resetting every column first."""
        idx = xp.nonzero(mask)[0]
        n = int(idx.shape[0])
        if n == 0:
            return 0
        self._check_fields(fields)
        cols = self._fresh(n, fields)
        for name, col in cols.items():
            getattr(self, name)[idx] = col
        return n

    def remove(self, mask):
        """Delete the masked rows, keeping the order of the survivors."""
        n = int(xp.count_nonzero(mask))
        if n == 0:
            return 0
        keep = ~mask
        for name in self._columns():
            setattr(self, name, getattr(self, name)[keep])
        return n

    def truncate(self, cap):
        """Drop rows beyond cap from the tail; returns how many were dropped."""
        cap = max(0, int(cap))
        extra = len(self) - cap
        if extra <= 0:
            return 0
        for name in self._columns():
            setattr(self, name, getattr(self, name)[:cap])
        return extra

    def count(self, state):
        return int(xp.count_nonzero(self.state == state))

    def snapshot(self):
        """Host (numpy) copies of every column."""
        return {name: to_np(getattr(self, name)).copy() for name in self._columns()}
