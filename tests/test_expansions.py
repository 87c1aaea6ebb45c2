from linkbot.core.errors import BadStatus
from linkbot.services.expansions import (
    ImagePreview,
    NoticePreview,
    image_expansion,
    notice_expansion,
)
from linkbot.services.extractor import LinkMetadata

URL = "http://example.com/a"


class TestImageExpansion:
    def test_requires_uploaded_reference(self):
        meta = LinkMetadata(title="A", image_ref="http://example.com/a.png")
        assert image_expansion(meta) is None

    def test_uses_uploaded_reference(self):
        meta = LinkMetadata(
            title="A", image_ref="http://example.com/a.png", uploaded_image_ref="mxc://m/1"
        )
        assert image_expansion(meta) == ImagePreview(ref="mxc://m/1", width=120, height=120, caption="A")

    def test_video_dimensions_used_when_both_present(self):
        meta = LinkMetadata(uploaded_image_ref="mxc://m/1", video_width=640, video_height=360)
        preview = image_expansion(meta)
        assert (preview.width, preview.height) == (640, 360)
        assert preview.caption == ""

    def test_partial_video_dimensions_ignored(self):
        meta = LinkMetadata(uploaded_image_ref="mxc://m/1", video_width=640)
        assert image_expansion(meta).width == 120

    def test_no_metadata(self):
        assert image_expansion(None) is None

    def test_message_shape(self):
        msg = ImagePreview(ref="mxc://m/1", caption="A").to_message()
        assert msg == {"msgtype": "m.image", "body": "A", "url": "mxc://m/1", "info": {"w": 120, "h": 120}}


class TestNoticeExpansion:
    def test_title_and_description(self):
        meta = LinkMetadata(title="A", description="About A", canonical_url=URL)
        assert notice_expansion(meta) == NoticePreview(f'<a href="{URL}">A</a><br>About A')

    def test_title_only(self):
        meta = LinkMetadata(title="A", canonical_url=URL)
        assert notice_expansion(meta).html_body == f'<a href="{URL}">A</a>'

    def test_description_only_links_the_url(self):
        meta = LinkMetadata(description="About", canonical_url=URL)
        assert notice_expansion(meta).html_body == f'<a href="{URL}">{URL}</a><br>About'

    def test_nothing_to_say(self):
        assert notice_expansion(LinkMetadata(canonical_url=URL)) is None
        assert notice_expansion(None) is None

    def test_markup_is_escaped(self):
        meta = LinkMetadata(title="<b>A</b>", description="x & y", canonical_url=URL + '?q="1"')
        body = notice_expansion(meta).html_body
        assert "<b>" not in body
        assert "&lt;b&gt;A&lt;/b&gt;" in body
        assert "x &amp; y" in body
        assert "&quot;1&quot;" in body

    def test_errors_dropped_by_default(self):
        assert notice_expansion(None, BadStatus(URL, 500)) is None

    def test_errors_rendered_when_enabled(self):
        notice = notice_expansion(None, BadStatus(URL, 500), error_notices=True)
        assert notice.html_body == "Error fetching: Status code 500 is not 200"

    def test_message_shape(self):
        msg = NoticePreview('<a href="http://x.org/">X</a><br>desc').to_message()
        assert msg["msgtype"] == "m.notice"
        assert msg["format"] == "org.matrix.custom.html"
        assert msg["formatted_body"] == '<a href="http://x.org/">X</a><br>desc'
        assert msg["body"].split() == ["X", "desc"]
