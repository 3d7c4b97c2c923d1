"""
TapMedia Backend — Upload Service Unit Tests
=============================================

What:  Tests for the upload → OCR → tag workflow and upload signing.
How:   UploadService gets an AsyncMock client; no Cloudinary calls.

What we test:
    ✅ Upload options per media kind
    ✅ OCR tags attached independently, failures tolerated
    ✅ Upload failure surfaces as UpstreamError
    ✅ Signed upload parameters
"""

from unittest.mock import call, patch

import pytest

from tapmedia.exceptions import UpstreamError, ValidationError
from tapmedia.schemas.media import SignUploadRequest, UploadMetadata
from tapmedia.services.upload_service import (
    OCR_INDEXED_TAG,
    MediaKind,
    UploadService,
    build_upload_options,
    detect_media_kind,
    parse_tag_field,
)


def ocr_result(text, public_id="tap_1_team"):
    return {
        "public_id": public_id,
        "secure_url": f"https://res.cloudinary.com/test-cloud/image/upload/{public_id}.jpg",
        "width": 800,
        "height": 600,
        "format": "jpg",
        "bytes": 1234,
        "created_at": "2024-01-15T12:00:00Z",
        "tags": ["Team Photo"],
        "info": {"ocr": {"adv_ocr": {"data": [{"textAnnotations": [{"description": text}]}]}}},
    }


class TestUploadHelpers:

    def test_detect_media_kind(self):
        assert detect_media_kind("image/jpeg", "a.jpg") is MediaKind.IMAGE
        assert detect_media_kind("audio/mpeg", "a.mp3") is MediaKind.AUDIO
        assert detect_media_kind("application/pdf", "a.pdf") is MediaKind.PDF
        assert detect_media_kind(None, "scan.PDF") is MediaKind.PDF
        assert detect_media_kind("video/mp4", "a.mp4") is MediaKind.VIDEO
        assert detect_media_kind(None, "unknown.bin") is MediaKind.VIDEO

    def test_parse_tag_field(self):
        assert parse_tag_field(None) == []
        assert parse_tag_field('["a", " b ", ""]') == ["a", "b"]
        assert parse_tag_field("a, b,,c") == ["a", "b", "c"]
        assert parse_tag_field('{"not": "a list"}') == ['{"not": "a list"}']

    def test_image_options_enable_ocr(self):
        metadata = UploadMetadata(name="Team Photo", tap_year="2023", folder="events")

        options = build_upload_options(metadata, "team.jpg", MediaKind.IMAGE)

        assert options["ocr"] == "adv_ocr"
        assert "resource_type" not in options
        assert options["tags"] == ["Team Photo"]
        assert options["context"] == {"name": "Team Photo", "tapYear": "2023"}
        assert options["folder"] == "events"
        assert options["public_id"].startswith("tap_")
        assert options["public_id"].endswith("_team")

    def test_audio_options(self):
        options = build_upload_options(UploadMetadata(name="Song"), "song.mp3", MediaKind.AUDIO)
        assert options["resource_type"] == "video"
        assert options["tags"] == ["Song", "audio"]
        assert "ocr" not in options
        assert "folder" not in options

    def test_pdf_options(self):
        options = build_upload_options(
            UploadMetadata(name="Minutes", additional_tags=["board"]), "m.pdf", MediaKind.PDF
        )
        assert options["resource_type"] == "image"
        assert options["tags"] == ["Minutes", "pdf", "board"]
        assert options["context"] == {"name": "Minutes"}


class TestUploadAsset:

    def setup_method(self):
        self.metadata = UploadMetadata(name="Team Photo", tap_year="2023")

    @pytest.mark.asyncio
    async def test_image_upload_attaches_ocr_tags(self, mock_cloudinary_client):
        mock_cloudinary_client.upload.return_value = ocr_result("Σ John Smith (captain), Jane Doe")
        service = UploadService(client=mock_cloudinary_client)

        result = await service.upload_asset(
            file_path="/tmp/x.jpg",
            filename="team.jpg",
            content_type="image/jpeg",
            size=1234,
            metadata=self.metadata,
        )

        assert result.success is True
        assert result.public_id == "tap_1_team"
        assert result.ocr_tags == ["John Smith", "Jane Doe"]
        assert mock_cloudinary_client.add_tag.await_args_list == [
            call(OCR_INDEXED_TAG, "tap_1_team"),
            call("John Smith", "tap_1_team"),
            call("Jane Doe", "tap_1_team"),
        ]
        mock_cloudinary_client.upload_large.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_response_uses_camel_case_keys(self, mock_cloudinary_client):
        mock_cloudinary_client.upload.return_value = ocr_result("Jane Doe")
        service = UploadService(client=mock_cloudinary_client)

        result = await service.upload_asset("/tmp/x.jpg", "team.jpg", "image/jpeg", 1234, self.metadata)
        body = result.model_dump(by_alias=True)

        assert body["publicId"] == "tap_1_team"
        assert body["ocrTags"] == ["Jane Doe"]
        assert body["metadata"]["createdAt"] == "2024-01-15T12:00:00Z"

    @pytest.mark.asyncio
    async def test_failed_tag_does_not_stop_others(self, mock_cloudinary_client):
        mock_cloudinary_client.upload.return_value = ocr_result("John Smith, Jane Doe")

        async def add_tag(tag, public_id):
            if tag == "John Smith":
                raise UpstreamError(message="rate limited")
            return {"public_ids": [public_id]}

        mock_cloudinary_client.add_tag.side_effect = add_tag
        service = UploadService(client=mock_cloudinary_client)

        result = await service.upload_asset("/tmp/x.jpg", "team.jpg", "image/jpeg", 1234, self.metadata)

        assert result.ocr_tags == ["John Smith", "Jane Doe"]
        assert mock_cloudinary_client.add_tag.await_count == 3

    @pytest.mark.asyncio
    async def test_image_without_ocr_text_is_not_tagged(self, mock_cloudinary_client):
        mock_cloudinary_client.upload.return_value = {"public_id": "tap_1_blank"}
        service = UploadService(client=mock_cloudinary_client)

        result = await service.upload_asset("/tmp/x.png", "blank.png", "image/png", 10, self.metadata)

        assert result.ocr_text == ""
        assert result.ocr_tags == []
        assert result.tags == ["Team Photo"]
        assert result.context == {"custom": {"name": "Team Photo"}}
        mock_cloudinary_client.add_tag.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_malformed_ocr_payload_still_succeeds(self, mock_cloudinary_client):
        result_body = ocr_result("unused")
        result_body["info"]["ocr"]["adv_ocr"]["data"] = [
            {"textAnnotations": ["John Smith"]},
            {"textAnnotations": [{"description": "Jane Doe"}]},
        ]
        mock_cloudinary_client.upload.return_value = result_body
        service = UploadService(client=mock_cloudinary_client)

        result = await service.upload_asset("/tmp/x.jpg", "team.jpg", "image/jpeg", 1234, self.metadata)

        assert result.success is True
        assert result.ocr_text == "Jane Doe"
        assert result.ocr_tags == ["Jane Doe"]

    @pytest.mark.asyncio
    async def test_video_skips_ocr(self, mock_cloudinary_client):
        mock_cloudinary_client.upload.return_value = ocr_result("Jane Doe", public_id="clip")
        service = UploadService(client=mock_cloudinary_client)

        result = await service.upload_asset("/tmp/c.mp4", "c.mp4", "video/mp4", 10, self.metadata)

        assert result.ocr_tags == []
        mock_cloudinary_client.add_tag.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_large_file_uses_chunked_upload(self, mock_cloudinary_client):
        mock_cloudinary_client.upload_large.return_value = {"public_id": "big"}
        service = UploadService(client=mock_cloudinary_client)

        with patch('tapmedia.services.upload_service.settings') as mock_settings:
            mock_settings.large_upload_threshold = 100
            mock_settings.large_upload_timeout = 300
            mock_settings.upload_timeout = 120
            await service.upload_asset("/tmp/big.mp4", "big.mp4", "video/mp4", 101, self.metadata)

        mock_cloudinary_client.upload.assert_not_awaited()
        assert mock_cloudinary_client.upload_large.await_args.kwargs["timeout"] == 300

    @pytest.mark.asyncio
    async def test_upload_failure_raises_upstream_error(self, mock_cloudinary_client):
        mock_cloudinary_client.upload.side_effect = UpstreamError(message="Invalid image file")
        service = UploadService(client=mock_cloudinary_client)

        with pytest.raises(UpstreamError, match="Cloudinary upload failed: Invalid image file"):
            await service.upload_asset("/tmp/x.jpg", "x.jpg", "image/jpeg", 10, self.metadata)

    @pytest.mark.asyncio
    async def test_blank_name_rejected(self, mock_cloudinary_client):
        service = UploadService(client=mock_cloudinary_client)

        with pytest.raises(ValidationError, match="name is required"):
            await service.upload_asset("/tmp/x.jpg", "x.jpg", "image/jpeg", 10, UploadMetadata(name="  "))
        mock_cloudinary_client.upload.assert_not_awaited()


class TestSignUpload:

    def test_signs_folder_and_tags(self, mock_cloudinary_client):
        service = UploadService(client=mock_cloudinary_client)

        response = service.sign_upload(
            SignUploadRequest(folder="events", name="Spring Formal", isAudio=True)
        )

        signed = mock_cloudinary_client.sign.call_args.args[0]
        assert signed["folder"] == "events"
        assert signed["context"] == "name=Spring Formal"
        assert signed["tags"] == "Spring Formal,audio"
        assert signed["public_id"].endswith("_Spring_Formal")

        body = response.model_dump(by_alias=True)
        assert body["signature"] == "signed-abc"
        assert body["timestamp"] == 1700000000
        assert body["cloudName"] == "test-cloud"
        assert body["apiKey"] == "123456789"
        assert body["uploadParams"]["tags"] == ["Spring Formal", "audio"]
        assert body["uploadParams"]["resource_type"] == "video"

    def test_defaults_without_body(self, mock_cloudinary_client):
        service = UploadService(client=mock_cloudinary_client)

        response = service.sign_upload(SignUploadRequest())

        signed = mock_cloudinary_client.sign.call_args.args[0]
        assert "folder" not in signed
        assert signed["tags"] == ""
        assert response.public_id.endswith("_upload")
