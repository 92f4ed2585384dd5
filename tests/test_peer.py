import pytest

from pulseira.peer import (
    BLE_HS_EALREADY,
    BLE_HS_EDONE,
    BLE_HS_ENOMEM,
    BLE_HS_ENOTCONN,
    GattCharacteristic,
    GattDescriptor,
    GattService,
    PeerError,
    PeerRegistry,
)


class FakeClient:
    def __init__(self, fail_on=None, fail_status=5):
        self.calls = []
        self.fail_on = fail_on
        self.fail_status = fail_status

    def _record(self, call):
        self.calls.append(call)
        if self.fail_on == call[0]:
            raise PeerError(self.fail_status)

    def disc_all_svcs(self, conn_handle):
        self._record(("svcs", conn_handle))

    def disc_svc_by_uuid(self, conn_handle, uuid):
        self._record(("svc_uuid", conn_handle, uuid))

    def disc_all_chrs(self, conn_handle, start_handle, end_handle):
        self._record(("chrs", conn_handle, start_handle, end_handle))

    def disc_all_dscs(self, conn_handle, chr_val_handle, end_handle):
        self._record(("dscs", conn_handle, chr_val_handle, end_handle))


def make_registry(client=None, limits=(4, 8, 8, 8)):
    return PeerRegistry(client or FakeClient(), *limits)


def run_full_discovery(registry, client, results):
    registry.add(1)
    registry.disc_all(1, lambda peer, status: results.append((peer.conn_handle, status)))
    registry.on_service(1, 0, GattService(1, 5, 0x1800))
    registry.on_service(1, 0, GattService(6, 20, 0x1819))
    registry.on_service(1, BLE_HS_EDONE, None)
    registry.on_characteristic(1, 0, GattCharacteristic(2, 3, 0x2A00))
    registry.on_characteristic(1, BLE_HS_EDONE, None)
    registry.on_characteristic(1, 0, GattCharacteristic(7, 8, 0x2A67))
    registry.on_characteristic(1, BLE_HS_EDONE, None)
    registry.on_descriptor(1, 0, 3, GattDescriptor(4, 0x2902))
    registry.on_descriptor(1, BLE_HS_EDONE, 3, None)
    registry.on_descriptor(1, BLE_HS_EDONE, 8, None)


def test_full_discovery_sequence_of_procedures():
    client = FakeClient()
    registry = make_registry(client)
    results = []
    run_full_discovery(registry, client, results)
    assert client.calls == [
        ("svcs", 1),
        ("chrs", 1, 1, 5),
        ("chrs", 1, 6, 20),
        ("dscs", 1, 3, 5),
        ("dscs", 1, 8, 20),
    ]
    assert results == [(1, 0)]
    assert registry.find(1).disc_prev_chr_val == 0


def test_lookup_by_uuid_after_discovery():
    client = FakeClient()
    registry = make_registry(client)
    run_full_discovery(registry, client, [])
    peer = registry.find(1)
    assert peer.svc_find_uuid(0x1819).svc.start_handle == 6
    assert peer.chr_find_uuid(0x1819, 0x2A67).chr.val_handle == 8
    assert peer.dsc_find_uuid(0x1800, 0x2A00, 0x2902).dsc.handle == 4
    assert peer.svc_find_uuid(0x1234) is None
    assert peer.chr_find_uuid(0x1234, 0x2A67) is None
    assert peer.dsc_find_uuid(0x1819, 0x2A67, 0x2902) is None


def test_services_kept_sorted_and_deduplicated():
    registry = make_registry()
    registry.add(3)
    registry.disc_all(3, None)
    registry.on_service(3, 0, GattService(30, 40, 0xA))
    registry.on_service(3, 0, GattService(10, 20, 0xB))
    registry.on_service(3, 0, GattService(10, 20, 0xB))
    peer = registry.find(3)
    assert [s.svc.start_handle for s in peer.svcs] == [10, 30]


def test_add_duplicate_raises_already():
    registry = make_registry()
    registry.add(1)
    with pytest.raises(PeerError) as info:
        registry.add(1)
    assert info.value.status == BLE_HS_EALREADY


def test_unknown_connection_raises_not_connected():
    registry = make_registry()
    for action in (
        lambda: registry.delete(9),
        lambda: registry.disc_all(9, None),
        lambda: registry.disc_svc_by_uuid(9, 0x1819, None),
        lambda: registry.set_addr(9, bytes(6)),
    ):
        with pytest.raises(PeerError) as info:
            action()
        assert info.value.status == BLE_HS_ENOTCONN


def test_peer_pool_exhaustion_and_reuse_after_delete():
    registry = make_registry(limits=(1, 1, 1, 1))
    registry.add(1)
    with pytest.raises(PeerError) as info:
        registry.add(2)
    assert info.value.status == BLE_HS_ENOMEM
    registry.delete(1)
    assert registry.find(1) is None
    assert registry.add(2).conn_handle == 2


def test_service_pool_exhaustion_completes_with_nomem():
    registry = make_registry(limits=(1, 1, 1, 1))
    registry.add(1)
    results = []
    registry.disc_all(1, lambda peer, status: results.append(status))
    assert registry.on_service(1, 0, GattService(1, 5, 0x1800)) == 0
    assert registry.on_service(1, 0, GattService(6, 9, 0x1801)) == BLE_HS_ENOMEM
    assert results == [BLE_HS_ENOMEM]


def test_rediscovery_frees_previous_results():
    registry = make_registry(limits=(1, 1, 1, 1))
    registry.add(1)
    registry.disc_all(1, None)
    registry.on_service(1, 0, GattService(1, 5, 0x1800))
    registry.disc_all(1, None)
    assert registry.find(1).svcs == []
    assert registry.on_service(1, 0, GattService(1, 5, 0x1800)) == 0


def test_error_status_aborts_discovery():
    registry = make_registry()
    registry.add(1)
    results = []
    registry.disc_all(1, lambda peer, status: results.append(status))
    assert registry.on_service(1, 0x105, None) == 0x105
    assert results == [0x105]
    assert registry.find(1).disc_prev_chr_val == 0


def test_client_failure_on_characteristics_completes_with_its_status():
    client = FakeClient(fail_on="chrs", fail_status=13)
    registry = make_registry(client)
    registry.add(1)
    results = []
    registry.disc_all(1, lambda peer, status: results.append(status))
    registry.on_service(1, 0, GattService(1, 5, 0x1800))
    registry.on_service(1, BLE_HS_EDONE, None)
    assert results == [13]


def test_client_failure_on_start_propagates():
    client = FakeClient(fail_on="svc_uuid", fail_status=3)
    registry = make_registry(client)
    registry.add(1)
    with pytest.raises(PeerError) as info:
        registry.disc_svc_by_uuid(1, 0x1819, None)
    assert info.value.status == 3
    assert client.calls == [("svc_uuid", 1, 0x1819)]


def test_empty_services_complete_without_descriptor_discovery():
    client = FakeClient()
    registry = make_registry(client)
    registry.add(1)
    results = []
    registry.disc_all(1, lambda peer, status: results.append(status))
    registry.on_service(1, 0, GattService(5, 5, 0x1800))
    registry.on_service(1, BLE_HS_EDONE, None)
    assert results == [0]
    assert client.calls == [("svcs", 1)]


def test_traverse_newest_first_and_stops():
    registry = make_registry()
    for handle in (1, 2, 3):
        registry.add(handle)
    seen = []
    registry.traverse_all(lambda peer: seen.append(peer.conn_handle) or peer.conn_handle == 2)
    assert seen == [3, 2]


def test_set_addr_stores_six_bytes():
    registry = make_registry()
    registry.add(1)
    registry.set_addr(1, bytes(range(1, 8)))
    assert registry.find(1).peer_addr == bytes(range(1, 7))
    with pytest.raises(ValueError):
        registry.set_addr(1, b"\x01\x02")


def test_negative_limit_rejected():
    with pytest.raises(ValueError):
        PeerRegistry(FakeClient(), -1, 1, 1, 1)