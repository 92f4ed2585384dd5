"""Tracking of connected peers and discovery of their GATT services, characteristics and descriptors."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Hashable, Optional, Protocol

PEER_ADDR_VAL_SIZE = 6

# Host status codes
BLE_HS_EALREADY = 2
BLE_HS_ENOMEM = 6
BLE_HS_ENOTCONN = 7
BLE_HS_EOS = 11
BLE_HS_EDONE = 14
BLE_HS_EUNKNOWN = 17


class PeerError(Exception):
    """A peer operation failed with a host status code."""

    def __init__(self, status: int, message: str = "") -> None:
        super().__init__(message or f"peer operation failed with status {status}")
        self.status = status


@dataclass(frozen=True)
class GattService:
    """A discovered service: its handle range and UUID."""

    start_handle: int
    end_handle: int
    uuid: Hashable


@dataclass(frozen=True)
class GattCharacteristic:
    """A discovered characteristic: declaration and value handles, UUID, properties."""

    def_handle: int
    val_handle: int
    uuid: Hashable
    properties: int = 0


@dataclass(frozen=True)
class GattDescriptor:
    """A discovered descriptor: its handle and UUID."""

    handle: int
    uuid: Hashable


@dataclass(eq=False)
class PeerDsc:
    dsc: GattDescriptor


@dataclass(eq=False)
class PeerChr:
    chr: GattCharacteristic
    dscs: list[PeerDsc] = field(default_factory=list)


@dataclass(eq=False)
class PeerSvc:
    svc: GattService
    chrs: list[PeerChr] = field(default_factory=list)


DiscCallback = Callable[["Peer", int], None]


@dataclass(eq=False)
class Peer:
    """A connected peer and what has been discovered of its attribute table."""

    conn_handle: int
    peer_addr: bytes = bytes(PEER_ADDR_VAL_SIZE)
    svcs: list[PeerSvc] = field(default_factory=list)
    disc_prev_chr_val: int = 0
    cur_svc: Optional[PeerSvc] = None
    disc_cb: Optional[DiscCallback] = None

    def svc_find_uuid(self, uuid: Hashable) -> Optional[PeerSvc]:
        """First discovered service with the given UUID, or None."""
        return next((s for s in self.svcs if s.svc.uuid == uuid), None)

    def chr_find_uuid(self, svc_uuid: Hashable, chr_uuid: Hashable) -> Optional[PeerChr]:
        """First characteristic with ``chr_uuid`` in the service with ``svc_uuid``, or None."""
        svc = self.svc_find_uuid(svc_uuid)
        if svc is None:
            return None
        return next((c for c in svc.chrs if c.chr.uuid == chr_uuid), None)

    def dsc_find_uuid(
        self, svc_uuid: Hashable, chr_uuid: Hashable, dsc_uuid: Hashable
    ) -> Optional[PeerDsc]:
        """First descriptor with ``dsc_uuid`` under the given service and characteristic, or None."""
        chr_ = self.chr_find_uuid(svc_uuid, chr_uuid)
        if chr_ is None:
            return None
        return next((d for d in chr_.dscs if d.dsc.uuid == dsc_uuid), None)


class GattClient(Protocol):
    """Starts discovery procedures; results come back through the registry's ``on_*`` methods.

    Each method raises PeerError when the procedure cannot be started.
    """

    def disc_all_svcs(self, conn_handle: int) -> None: ...

    def disc_svc_by_uuid(self, conn_handle: int, uuid: Hashable) -> None: ...

    def disc_all_chrs(self, conn_handle: int, start_handle: int, end_handle: int) -> None: ...

    def disc_all_dscs(self, conn_handle: int, chr_val_handle: int, end_handle: int) -> None: ...


def _svc_is_empty(svc: PeerSvc) -> bool:
    return svc.svc.end_handle <= svc.svc.start_handle


def _chr_end_handle(svc: PeerSvc, chr_: PeerChr) -> int:
    index = svc.chrs.index(chr_)
    if index + 1 < len(svc.chrs):
        return (svc.chrs[index + 1].chr.def_handle - 1) & 0xFFFF
    return svc.svc.end_handle


def _chr_is_empty(svc: PeerSvc, chr_: PeerChr) -> bool:
    return _chr_end_handle(svc, chr_) <= chr_.chr.val_handle


def _insert_position(keys: list[int], handle: int) -> int:
    """Index of the first entry whose key is not below ``handle``."""
    return next((i for i, key in enumerate(keys) if key >= handle), len(keys))


class PeerRegistry:
    """Keeps the connected peers and runs service, characteristic and descriptor discovery.

    The limits bound how many peers, services, characteristics and descriptors
    can be held at once across all peers.
    """

    def __init__(
        self,
        client: GattClient,
        max_peers: int,
        max_svcs: int,
        max_chrs: int,
        max_dscs: int,
    ) -> None:
        limits = {"peers": max_peers, "svcs": max_svcs, "chrs": max_chrs, "dscs": max_dscs}
        for name, value in limits.items():
            if value < 0:
                raise ValueError(f"max_{name} must not be negative")
        self.client = client
        self._limits = limits
        self._used = dict.fromkeys(limits, 0)
        self._peers: list[Peer] = []

    # pool accounting

    def _take(self, pool: str) -> None:
        if self._used[pool] >= self._limits[pool]:
            raise PeerError(BLE_HS_ENOMEM, f"no free {pool}")
        self._used[pool] += 1

    def _free_chr(self, chr_: PeerChr) -> None:
        self._used["dscs"] -= len(chr_.dscs)
        chr_.dscs.clear()
        self._used["chrs"] -= 1

    def _free_svcs(self, peer: Peer) -> None:
        for svc in peer.svcs:
            for chr_ in svc.chrs:
                self._free_chr(chr_)
            svc.chrs.clear()
            self._used["svcs"] -= 1
        peer.svcs.clear()
        peer.cur_svc = None

    # peers

    def find(self, conn_handle: int) -> Optional[Peer]:
        """The peer on the given connection, or None."""
        return next((p for p in self._peers if p.conn_handle == conn_handle), None)

    def _require(self, conn_handle: int) -> Peer:
        peer = self.find(conn_handle)
        if peer is None:
            raise PeerError(BLE_HS_ENOTCONN, f"no peer on connection {conn_handle}")
        return peer

    def add(self, conn_handle: int) -> Peer:
        """Start tracking a new connection."""
        if self.find(conn_handle) is not None:
            raise PeerError(BLE_HS_EALREADY, f"connection {conn_handle} already tracked")
        self._take("peers")
        peer = Peer(conn_handle=conn_handle)
        self._peers.insert(0, peer)
        return peer

    def delete(self, conn_handle: int) -> None:
        """Forget a connection and everything discovered on it."""
        peer = self._require(conn_handle)
        self._peers.remove(peer)
        self._free_svcs(peer)
        self._used["peers"] -= 1

    def traverse_all(self, callback: Optional[Callable[[Peer], object]]) -> None:
        """Call ``callback`` on each peer, newest first, until it returns a true value."""
        if callback is None:
            return
        for peer in list(self._peers):
            if callback(peer):
                return

    def set_addr(self, conn_handle: int, addr: bytes) -> None:
        """Record the peer's 6-byte address."""
        peer = self._require(conn_handle)
        raw = bytes(addr)
        if len(raw) < PEER_ADDR_VAL_SIZE:
            raise ValueError(f"address needs {PEER_ADDR_VAL_SIZE} bytes, got {len(raw)}")
        peer.peer_addr = raw[:PEER_ADDR_VAL_SIZE]

    # discovery entry points

    def _start(self, conn_handle: int, on_complete: Optional[DiscCallback]) -> Peer:
        peer = self._require(conn_handle)
        self._free_svcs(peer)
        peer.disc_prev_chr_val = 1
        peer.disc_cb = on_complete
        return peer

    def disc_all(self, conn_handle: int, on_complete: Optional[DiscCallback]) -> None:
        """Discover all services, characteristics and descriptors of a peer.

        ``on_complete(peer, status)`` is called once discovery ends.
        """
        self._start(conn_handle, on_complete)
        self.client.disc_all_svcs(conn_handle)

    def disc_svc_by_uuid(
        self, conn_handle: int, uuid: Hashable, on_complete: Optional[DiscCallback]
    ) -> None:
        """Discover the services with the given UUID, then their contents."""
        self._start(conn_handle, on_complete)
        self.client.disc_svc_by_uuid(conn_handle, uuid)

    def _complete(self, peer: Peer, status: int) -> None:
        peer.disc_prev_chr_val = 0
        if peer.disc_cb is not None:
            peer.disc_cb(peer, status)

    # services

    def _svc_add(self, peer: Peer, gatt_svc: GattService) -> None:
        keys = [s.svc.start_handle for s in peer.svcs]
        pos = _insert_position(keys, gatt_svc.start_handle)
        if pos < len(keys) and keys[pos] == gatt_svc.start_handle:
            return
        self._take("svcs")
        peer.svcs.insert(pos, PeerSvc(gatt_svc))

    def on_service(self, conn_handle: int, status: int, service: Optional[GattService]) -> int:
        """Receive one service discovery result; return 0 to continue, else the error status."""
        peer = self._require(conn_handle)
        rc = 0
        if status == 0:
            try:
                self._svc_add(peer, service)
            except PeerError as exc:
                rc = exc.status
        elif status == BLE_HS_EDONE:
            if peer.disc_prev_chr_val > 0:
                self._disc_chrs(peer)
        else:
            rc = status
        if rc != 0:
            self._complete(peer, rc)
        return rc

    # characteristics

    @staticmethod
    def _chr_find(svc: PeerSvc, handle: int) -> tuple[Optional[PeerChr], int]:
        keys = [c.chr.val_handle for c in svc.chrs]
        pos = _insert_position(keys, handle)
        if pos < len(keys) and keys[pos] == handle:
            return svc.chrs[pos], pos
        return None, pos

    def _chr_add(self, peer: Peer, svc_start_handle: int, gatt_chr: GattCharacteristic) -> None:
        svc = next((s for s in peer.svcs if s.svc.start_handle == svc_start_handle), None)
        if svc is None:
            raise PeerError(BLE_HS_EUNKNOWN, "characteristic outside any known service")
        existing, pos = self._chr_find(svc, gatt_chr.def_handle)
        if existing is not None:
            return
        self._take("chrs")
        svc.chrs.insert(pos, PeerChr(gatt_chr))

    def _disc_chrs(self, peer: Peer) -> None:
        for svc in peer.svcs:
            if not _svc_is_empty(svc) and not svc.chrs:
                peer.cur_svc = svc
                try:
                    self.client.disc_all_chrs(
                        peer.conn_handle, svc.svc.start_handle, svc.svc.end_handle
                    )
                except PeerError as exc:
                    self._complete(peer, exc.status)
                return
        self._disc_dscs(peer)

    def on_characteristic(
        self, conn_handle: int, status: int, characteristic: Optional[GattCharacteristic]
    ) -> int:
        """Receive one characteristic discovery result; return 0 to continue, else the error status."""
        peer = self._require(conn_handle)
        rc = 0
        if status == 0:
            try:
                if peer.cur_svc is None:
                    raise PeerError(BLE_HS_EUNKNOWN, "no service being discovered")
                self._chr_add(peer, peer.cur_svc.svc.start_handle, characteristic)
            except PeerError as exc:
                rc = exc.status
        elif status == BLE_HS_EDONE:
            if peer.disc_prev_chr_val > 0:
                self._disc_chrs(peer)
        else:
            rc = status
        if rc != 0:
            self._complete(peer, rc)
        return rc

    # descriptors

    def _dsc_add(self, peer: Peer, chr_val_handle: int, gatt_dsc: GattDescriptor) -> None:
        svc = next(
            (
                s
                for s in peer.svcs
                if s.svc.start_handle <= chr_val_handle <= s.svc.end_handle
            ),
            None,
        )
        if svc is None:
            raise PeerError(BLE_HS_EUNKNOWN, "descriptor outside any known service")
        chr_, _ = self._chr_find(svc, chr_val_handle)
        if chr_ is None:
            raise PeerError(BLE_HS_EUNKNOWN, "descriptor of an unknown characteristic")
        keys = [d.dsc.handle for d in chr_.dscs]
        pos = _insert_position(keys, gatt_dsc.handle)
        if pos < len(keys) and keys[pos] == gatt_dsc.handle:
            return
        self._take("dscs")
        chr_.dscs.insert(pos, PeerDsc(gatt_dsc))

    def _disc_dscs(self, peer: Peer) -> None:
        for svc in peer.svcs:
            for chr_ in svc.chrs:
                if (
                    not _chr_is_empty(svc, chr_)
                    and not chr_.dscs
                    and peer.disc_prev_chr_val <= chr_.chr.def_handle
                ):
                    try:
                        self.client.disc_all_dscs(
                            peer.conn_handle, chr_.chr.val_handle, _chr_end_handle(svc, chr_)
                        )
                    except PeerError as exc:
                        self._complete(peer, exc.status)
                    peer.disc_prev_chr_val = chr_.chr.val_handle
                    return
        self._complete(peer, 0)

    def on_descriptor(
        self,
        conn_handle: int,
        status: int,
        chr_val_handle: int,
        descriptor: Optional[GattDescriptor],
    ) -> int:
        """Receive one descriptor discovery result; return 0 to continue, else the error status."""
        peer = self._require(conn_handle)
        rc = 0
        if status == 0:
            try:
                self._dsc_add(peer, chr_val_handle, descriptor)
            except PeerError as exc:
                rc = exc.status
        elif status == BLE_HS_EDONE:
            if peer.disc_prev_chr_val > 0:
                self._disc_dscs(peer)
        else:
            rc = status
        if rc != 0:
            self._complete(peer, rc)
        return rc