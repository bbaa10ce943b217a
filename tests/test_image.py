import pytest
from fat12fs.engine import FileTransferEngine
from fat12fs.errors import FAT12Error
from fat12fs.image import create_empty_image, write_cluster
from fat12fs.layout import ImageLayout, DEFAULT_LAYOUT


class TestCreateEmptyImage:
    def test_blank_144mb(self, tmp_path):
        img_path = tmp_path / "blank.img"
        create_empty_image(str(img_path))

        raw = img_path.read_bytes()
        layout = DEFAULT_LAYOUT
        assert len(raw) == layout.total_size
        for offset in layout.fat_offsets:
            fat = raw[offset:offset + layout.fat_bytes]
            assert fat[:3] == b'\xF0\xFF\xFF'
            assert all(b == 0 for b in fat[3:])

        # Directory and data area are zeroed
        assert all(b == 0 for b in raw[layout.directory_offset:])

    def test_blank_720kb_media_descriptor(self, tmp_path):
        layout = ImageLayout.from_format('720KB')
        img_path = tmp_path / "blank720.img"
        create_empty_image(str(img_path), layout)

        raw = img_path.read_bytes()
        assert len(raw) == 737280
        assert raw[layout.fat_offset:layout.fat_offset + 3] == b'\xF9\xFF\xFF'
        assert raw[layout.fat_mirror_offset:layout.fat_mirror_offset + 3] == b'\xF9\xFF\xFF'

    def test_blank_image_has_no_files(self, tmp_path):
        img_path = tmp_path / "blank.img"
        create_empty_image(str(img_path))
        engine = FileTransferEngine(str(img_path))

        assert engine.list_directory() == []
        assert engine.free_clusters() == DEFAULT_LAYOUT.cluster_count


class TestWriteCluster:
    @pytest.fixture
    def image_path(self, tmp_path):
        img_path = tmp_path / "raw.img"
        create_empty_image(str(img_path))
        return str(img_path)

    def test_write_bypasses_fat_and_directory(self, image_path):
        layout = DEFAULT_LAYOUT
        with open(image_path, 'rb') as f:
            before = f.read(layout.data_offset)

        write_cluster(image_path, layout, 10, b"RAWDATA")

        with open(image_path, 'rb') as f:
            raw = f.read()
        offset = layout.cluster_offset(10)
        assert raw[offset:offset + 7] == b"RAWDATA"
        assert raw[:layout.data_offset] == before

    def test_write_rejects_reserved_cluster(self, image_path):
        with pytest.raises(FAT12Error):
            write_cluster(image_path, DEFAULT_LAYOUT, 1, b"x")

    def test_write_rejects_data_past_end(self, image_path):
        layout = DEFAULT_LAYOUT
        with pytest.raises(FAT12Error):
            write_cluster(image_path, layout, layout.max_cluster, b"x" * (layout.cluster_bytes + 1))
