"""Live photo container assembly: ftyp + meta + still payload + video region."""

import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import Optional
from xml.sax.saxutils import quoteattr

from livephoto_suite.models.metadata import ContainerLayout, EncodingConfig, LivePhotoMetadata
from livephoto_suite.utils.boxes import BoxBuffer

logger = logging.getLogger(__name__)

BUFFER_SIZE = 1024 * 1024  # 1 MB

MAJOR_BRAND = "heic"
COMPATIBLE_BRANDS = ["mif1", "heic", "heix", "MiHE"]
RECOGNIZED_BRANDS = frozenset(COMPATIBLE_BRANDS)

PRIMARY_ITEM_ID = 1
PRIMARY_ITEM_TYPE = "hvc1"
HANDLER_TYPE = "pict"

# Adobe XMP uuid box signature: BE7ACFCB-97A9-42E8-9C71-999491E3AFAC
XMP_UUID = bytes.fromhex("BE7ACFCB97A942E89C71999491E3AFAC")

ILOC_EXTENT_OFFSET = "iloc.extent_offset"
ILOC_EXTENT_LENGTH = "iloc.extent_length"

XMP_TEMPLATE = """<?xpacket begin="" id="W5M0MpCehiHzreSzNTczkc9d"?>
<x:xmpmeta xmlns:x="adobe:ns:meta/">
    <rdf:RDF xmlns:rdf="http://www.w3.org/1999/02/22-rdf-syntax-ns#">
        <rdf:Description rdf:about=""
            xmlns:apple_desktop="http://ns.apple.com/quicktime/1.0/"
            apple_desktop:content.identifier={asset_identifier}
            apple_desktop:still-image-time={still_image_time}/>
    </rdf:RDF>
</x:xmpmeta>
<?xpacket end="w"?>"""


def build_xmp(asset_identifier: str, still_image_time: int) -> bytes:
    """Build the XMP packet carrying the content identifier and still-image time."""
    xmp = XMP_TEMPLATE.format(
        asset_identifier=quoteattr(asset_identifier, {'"': "&quot;"}),
        still_image_time=quoteattr(str(still_image_time)),
    )
    return xmp.encode("utf-8")


def build_ftyp_box() -> bytes:
    buf = BoxBuffer()
    with buf.box("ftyp"):
        buf.write_fourcc(MAJOR_BRAND)
        buf.write_u32(0)  # minor version
        for brand in COMPATIBLE_BRANDS:
            buf.write_fourcc(brand)
    return buf.getvalue()


def _write_hdlr(buf: BoxBuffer) -> None:
    # version/flags, pre_defined, handler_type, reserved[3], empty name
    content = bytearray(32)
    content[8:12] = HANDLER_TYPE.encode("ascii")
    with buf.box("hdlr"):
        buf.write(bytes(content))


def _write_pitm(buf: BoxBuffer, item_id: int) -> None:
    with buf.box("pitm", version=0):
        buf.write_u16(item_id)


def _write_iloc(buf: BoxBuffer, item_id: int) -> None:
    with buf.box("iloc", version=1):
        buf.write_u8(0x44)  # offset_size=4, length_size=4
        buf.write_u8(0x00)  # base_offset_size=0, index_size=0
        buf.write_u16(1)  # item_count
        buf.write_u16(item_id)
        buf.write_u16(0)  # construction_method: file offset
        buf.write_u16(0)  # data_reference_index: this file
        buf.write_u16(1)  # extent_count
        buf.reserve_u32(ILOC_EXTENT_OFFSET)
        buf.reserve_u32(ILOC_EXTENT_LENGTH)


def _write_iinf(buf: BoxBuffer, item_id: int) -> None:
    with buf.box("iinf", version=0):
        buf.write_u16(1)  # entry_count
        with buf.box("infe", version=2):
            buf.write_u16(item_id)
            buf.write_u16(0)  # item_protection_index
            buf.write_fourcc(PRIMARY_ITEM_TYPE)
            buf.write(b"\x00")  # item_name


def _write_xmp(buf: BoxBuffer, asset_identifier: str, still_image_time: int, capacity: int) -> bool:
    xmp = build_xmp(asset_identifier, still_image_time)
    box_size = 8 + len(XMP_UUID) + len(xmp)
    if buf.tell() + box_size >= capacity:
        logger.warning(
            f"XMP block of {len(xmp):,} bytes does not fit in the {capacity:,} byte meta box; "
            f"skipping embedded metadata"
        )
        return False
    with buf.box("uuid"):
        buf.write(XMP_UUID)
        buf.write(xmp)
    return True


def build_meta_box(
    asset_identifier: str,
    metadata: LivePhotoMetadata,
    embed_metadata: bool,
    capacity: int = BUFFER_SIZE,
) -> tuple[BoxBuffer, bool]:
    """Compose the meta box. Returns the buffer and whether XMP was embedded.

    The iloc extent fields are left as zero placeholders in the returned
    buffer's patch table.
    """
    buf = BoxBuffer()
    xmp_embedded = False
    with buf.box("meta", version=0):
        _write_hdlr(buf)
        _write_pitm(buf, PRIMARY_ITEM_ID)
        _write_iloc(buf, PRIMARY_ITEM_ID)
        _write_iinf(buf, PRIMARY_ITEM_ID)
        if embed_metadata:
            xmp_embedded = _write_xmp(buf, asset_identifier, metadata.main_frame_index, capacity)
    return buf, xmp_embedded


def write_container(
    still_payload: bytes,
    video_file: Path,
    output_file: Path,
    asset_identifier: str,
    metadata: LivePhotoMetadata,
    config: Optional[EncodingConfig] = None,
) -> ContainerLayout:
    """Write the live photo container to ``output_file``.

    On failure an existing ``output_file`` is left untouched and no partial
    file remains.

    Raises:
        OSError: If the output directory or file cannot be created, or the
            video cannot be read.
    """
    config = config or EncodingConfig()

    ftyp = build_ftyp_box()
    meta, xmp_embedded = build_meta_box(asset_identifier, metadata, config.embed_metadata)

    still_offset = len(ftyp) + len(meta)
    meta.patch_u32(ILOC_EXTENT_OFFSET, still_offset)
    meta.patch_u32(ILOC_EXTENT_LENGTH, len(still_payload))

    # Assembled beside the destination and moved into place only when complete.
    output_file.parent.mkdir(parents=True, exist_ok=True)
    fd, name = tempfile.mkstemp(prefix=f".{output_file.name}.", suffix=".part", dir=output_file.parent)
    partial_file = Path(name)
    try:
        with os.fdopen(fd, "wb") as f_out:
            f_out.write(ftyp)
            f_out.write(meta.getvalue())
            f_out.write(still_payload)
            video_offset = f_out.tell()
            with open(video_file, "rb") as f_video:
                shutil.copyfileobj(f_video, f_out, BUFFER_SIZE)
            video_length = f_out.tell() - video_offset
        os.replace(partial_file, output_file)
    except BaseException:
        partial_file.unlink(missing_ok=True)
        raise

    layout = ContainerLayout(
        ftyp_size=len(ftyp),
        meta_size=len(meta),
        still_offset=still_offset,
        still_length=len(still_payload),
        video_offset=video_offset,
        video_length=video_length,
        xmp_embedded=xmp_embedded,
    )
    logger.debug(f"Container layout for {output_file}: {layout}")
    return layout
