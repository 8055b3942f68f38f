import os, hmac, hashlib, time, struct, secrets, threading
from typing import Callable, List, MutableSequence, Optional, Sequence, TypeVar, Union

T = TypeVar("T")
ByteSource = Callable[[int], bytes]


def _hkdf(seed: bytes, info: bytes, outlen=32) -> bytes:
    prk = hmac.new(b"\x00"*32, seed, hashlib.sha256).digest()
    return hmac.new(prk, info, hashlib.sha256).digest()[:outlen]

def _gather() -> bytes:
    pools=[os.urandom(64), struct.pack(">Q", time.time_ns())]
    raw=b"".join(pools)
    salt=hashlib.sha256(raw).digest()
    return hmac.new(salt, b"MIMIC-SEED", hashlib.sha256).digest()

class HmacDRBG:
    """ HMAC-DRBG (SHA-256). Lo stato e' protetto da lock: un'istanza puo' essere condivisa tra thread. """
    def __init__(self, seed: bytes):
        self.K=b"\x00"*32; self.V=b"\x01"*32
        self._lock=threading.Lock()
        self._upd(seed)
    def _h(self,k,d): return hmac.new(k,d,hashlib.sha256).digest()
    def _upd(self, pd=b""):
        self.K=self._h(self.K, self.V+b"\x00"+pd); self.V=self._h(self.K,self.V)
        if pd:
            self.K=self._h(self.K, self.V+b"\x01"+pd); self.V=self._h(self.K,self.V)
    def bytes(self,n:int)->bytes:
        with self._lock:
            out=b""
            while len(out)<n:
                self.V=self._h(self.K,self.V); out+=self.V
            self._upd()
            return out[:n]


class SecureRandom:
    """
    Integer ranges, picks and shuffles drawn from a cryptographic byte source.

    Every draw goes through ``token_bytes``; nothing here touches the
    ``random`` module. Pass one instance explicitly into the builders so tests
    can swap in a seeded stream.
    """

    def __init__(self, source: ByteSource):
        self._source = source

    def token_bytes(self, n: int) -> bytes:
        if n <= 0:
            return b""
        return self._source(n)

    def token_hex(self, n: int) -> str:
        return self.token_bytes(n).hex()

    def randbelow(self, n: int) -> int:
        """Uniform integer in [0, n) by rejection sampling (no modulo bias)"""
        if n <= 0:
            raise ValueError(f"randbelow() requires n > 0, got {n}")
        k = (n - 1).bit_length()
        if k == 0:
            return 0
        nbytes = (k + 7) // 8
        shift = nbytes * 8 - k
        while True:
            r = int.from_bytes(self._source(nbytes), "big") >> shift
            if r < n:
                return r

    def randrange(self, start: int, stop: int) -> int:
        """Uniform integer in [start, stop)"""
        if stop <= start:
            raise ValueError(f"empty range for randrange({start}, {stop})")
        return start + self.randbelow(stop - start)

    def randint(self, a: int, b: int) -> int:
        """Uniform integer in [a, b], both ends included"""
        return self.randrange(a, b + 1)

    def choice(self, seq: Sequence[T]) -> T:
        if not seq:
            raise IndexError("cannot choose from an empty sequence")
        return seq[self.randbelow(len(seq))]

    def shuffle(self, x: MutableSequence) -> None:
        """In-place Fisher-Yates"""
        for i in reversed(range(1, len(x))):
            j = self.randbelow(i + 1)
            x[i], x[j] = x[j], x[i]

    def sample(self, seq: Sequence[T], k: int) -> List[T]:
        pool = list(seq)
        if not 0 <= k <= len(pool):
            raise ValueError(f"sample size {k} out of range for population of {len(pool)}")
        self.shuffle(pool)
        return pool[:k]

    def coin(self) -> bool:
        return self.randbelow(2) == 0

    def one_in(self, n: int) -> bool:
        return self.randbelow(n) == 0


_system: Optional[SecureRandom] = None

def system_random() -> SecureRandom:
    """ Istanza di processo sul CSPRNG del sistema operativo (rientrante, nessuno stato locale). """
    global _system
    if _system is None:
        _system = SecureRandom(secrets.token_bytes)
    return _system

def seeded(seed: Union[bytes, str, int]) -> SecureRandom:
    """ Stream deterministico per i test. """
    if isinstance(seed, int):
        seed = seed.to_bytes(max(1, (seed.bit_length() + 7) // 8), "big")
    elif isinstance(seed, str):
        seed = seed.encode()
    return SecureRandom(HmacDRBG(_hkdf(seed, b"MIMIC-SEEDED")).bytes)

def qstream(label: bytes=b"") -> SecureRandom:
    seed=_hkdf(_gather(), label or b"MIMIC")
    return SecureRandom(HmacDRBG(seed).bytes)
