from spritecracker.kernel import preset
from spritecracker.kernel.chunk import ChunkHeader

ase = preset.shell(
    header_dtype=ChunkHeader,
    inclheader=True,
    tag_bounds='strict',
)
