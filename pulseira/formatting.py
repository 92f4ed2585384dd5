"""Text formatting of Bluetooth addresses, byte strings and advertising data."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional, Sequence, Union
from uuid import UUID

BLE_HS_ADV_MAX_SZ = 31
ADDR_LEN = 6

UuidLike = Union[int, UUID]


def addr_str(addr: bytes) -> str:
    """Format a 6-byte little-endian Bluetooth address as ``aa:bb:cc:dd:ee:ff``."""
    raw = bytes(addr)
    if len(raw) < ADDR_LEN:
        raise ValueError(f"address needs {ADDR_LEN} bytes, got {len(raw)}")
    return ":".join(f"{b:02x}" for b in reversed(raw[:ADDR_LEN]))


def format_bytes(data: bytes) -> str:
    """Format bytes as ``0x01:0x02:...``."""
    return ":".join(f"0x{b:02x}" for b in bytes(data))


def format_mbuf(chunks: Iterable[bytes]) -> str:
    """Format a chain of buffers, separating chunks with a colon."""
    return ":".join(format_bytes(chunk) for chunk in chunks)


def format_mbuf_data(chunks: Iterable[bytes]) -> str:
    """Format a chain of buffers as decimal values after a ``Data:`` label."""
    return "Data: " + "".join(f" {b}" for chunk in chunks for b in bytes(chunk))


def _uuid_str(uuid: UuidLike) -> str:
    if isinstance(uuid, UUID):
        return str(uuid)
    if uuid < 0:
        raise ValueError(f"invalid UUID value: {uuid}")
    if uuid <= 0xFFFF:
        return f"0x{uuid:04x}"
    if uuid <= 0xFFFFFFFF:
        return f"0x{uuid:08x}"
    return str(UUID(int=uuid))


@dataclass
class AdvFields:
    """Fields of a BLE advertisement; a field left as None is absent."""

    flags: int = 0
    uuids16: Optional[Sequence[UuidLike]] = None
    uuids16_is_complete: bool = False
    uuids32: Optional[Sequence[UuidLike]] = None
    uuids32_is_complete: bool = False
    uuids128: Optional[Sequence[UuidLike]] = None
    uuids128_is_complete: bool = False
    name: Optional[str] = None
    name_is_complete: bool = False
    tx_pwr_lvl: Optional[int] = None
    slave_itvl_range: Optional[bytes] = None
    sm_tk_value: Optional[bytes] = None
    sm_oob_flag: Optional[int] = None
    sol_uuids16: Optional[Sequence[UuidLike]] = None
    sol_uuids32: Optional[Sequence[UuidLike]] = None
    sol_uuids128: Optional[Sequence[UuidLike]] = None
    svc_data_uuid16: Optional[bytes] = None
    public_tgt_addr: Optional[Sequence[bytes]] = None
    random_tgt_addr: Optional[Sequence[bytes]] = None
    appearance: Optional[int] = None
    adv_itvl: Optional[int] = None
    device_addr: Optional[bytes] = None
    le_role: Optional[int] = None
    svc_data_uuid32: Optional[bytes] = None
    svc_data_uuid128: Optional[bytes] = None
    uri: Optional[bytes] = None
    mfg_data: Optional[bytes] = None


def format_adv_fields(fields: AdvFields) -> str:
    """Describe the fields present in an advertisement, one field per line."""
    parts: list[str] = []

    def uuid_list(label: str, uuids: Sequence[UuidLike], sep: str = " ") -> None:
        parts.append(label)
        parts.extend(_uuid_str(u) + sep for u in uuids)
        parts.append("\n")

    def complete_label(kind: str, is_complete: bool) -> str:
        prefix = "" if is_complete else "in"
        return f"    {kind}({prefix}complete)="

    def byte_field(label: str, data: Optional[bytes]) -> None:
        if data is not None:
            parts.append(f"    {label}={format_bytes(data)}\n")

    if fields.flags:
        parts.append(f"    flags=0x{fields.flags:02x}\n")
    if fields.uuids16 is not None:
        uuid_list(complete_label("uuids16", fields.uuids16_is_complete), fields.uuids16)
    if fields.uuids32 is not None:
        uuid_list(complete_label("uuids32", fields.uuids32_is_complete), fields.uuids32)
    if fields.uuids128 is not None:
        uuid_list(complete_label("uuids128", fields.uuids128_is_complete), fields.uuids128)
    if fields.name is not None:
        if len(fields.name) >= BLE_HS_ADV_MAX_SZ - 1:
            raise ValueError("advertised name too long")
        parts.append(complete_label("name", fields.name_is_complete) + f"{fields.name}\n")
    if fields.tx_pwr_lvl is not None:
        parts.append(f"    tx_pwr_lvl={fields.tx_pwr_lvl}\n")
    byte_field("slave_itvl_range", fields.slave_itvl_range)
    byte_field("sm_tk_value", fields.sm_tk_value)
    if fields.sm_oob_flag is not None:
        parts.append(f"    sm_oob_flag={fields.sm_oob_flag}\n")
    if fields.sol_uuids16 is not None:
        uuid_list("    sol_uuids16=", fields.sol_uuids16)
    if fields.sol_uuids32 is not None:
        uuid_list("    sol_uuids32=", fields.sol_uuids32, sep="\n")
    if fields.sol_uuids128 is not None:
        uuid_list("    sol_uuids128=", fields.sol_uuids128)
    byte_field("svc_data_uuid16", fields.svc_data_uuid16)
    for label, addrs in (
        ("public_tgt_addr", fields.public_tgt_addr),
        ("random_tgt_addr", fields.random_tgt_addr),
    ):
        if addrs is not None:
            parts.append(f"    {label}=")
            parts.extend(f"{label}={addr_str(a)} " for a in addrs)
            parts.append("\n")
    if fields.appearance is not None:
        parts.append(f"    appearance=0x{fields.appearance:04x}\n")
    if fields.adv_itvl is not None:
        parts.append(f"    adv_itvl=0x{fields.adv_itvl:04x}\n")
    if fields.device_addr is not None:
        raw = bytes(fields.device_addr)
        if len(raw) < ADDR_LEN + 1:
            raise ValueError("device_addr needs an address and a type byte")
        parts.append(f"    device_addr={addr_str(raw)} addr_type {raw[ADDR_LEN]} ")
    if fields.le_role is not None:
        parts.append(f"    le_role={fields.le_role}\n")
    byte_field("svc_data_uuid32", fields.svc_data_uuid32)
    byte_field("svc_data_uuid128", fields.svc_data_uuid128)
    byte_field("uri", fields.uri)
    byte_field("mfg_data", fields.mfg_data)
    return "".join(parts)