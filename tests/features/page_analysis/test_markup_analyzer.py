import pytest

from app.features.page_analysis.services.markup_analyzer import analyze_cv, analyze_html, analyze_markup

STOREFRONT = """
<html>
<head>
  <title>Acme Shop</title>
  <meta name="viewport" content="width=device-width, initial-scale=1">
  <meta name="description" content="Home goods with free shipping">
  <meta property="og:title" content="Acme">
  <meta property="og:image" content="/og.png">
  <meta property="og:url" content="https://acme.example">
  <script src="https://www.googletagmanager.com/gtm.js?id=GTM-1"></script>
</head>
<body>
  <header>
    <nav>
      <a href="/best">Best</a>
      <a href="/new">New</a>
      <a href="/sale">Sale</a>
      <a href="/me" style="height: 30px">My page</a>
    </nav>
    <input type="search" placeholder="Search products">
  </header>
  <h1>Summer collection</h1>
  <p style="font-size: 13px">Members save 10%</p>
  <span style="font-size: 0.75rem">Fine print</span>
  <div style="font-size: 6px">hidden tracker</div>
  <img src="/a.jpg" alt="Linen sofa">
  <img src="/b.jpg" alt="">
  <img src="/c.jpg">
  <div class="modal-backdrop"></div>
  <div style="position: fixed; z-index: 9999">Cookie banner</div>
  <div style="position: fixed; z-index: 10">Sticky footer</div>
</body>
</html>
"""


class TestCVMetrics:
    def test_storefront(self):
        cv = analyze_cv(STOREFRONT)

        assert cv.has_viewport is True
        assert cv.min_font_size == 12  # 0.75rem
        assert cv.min_touch_target == 30
        assert cv.has_overflow is False
        assert cv.alt_ratio == pytest.approx(1 / 3)
        assert cv.popup_count == 2

    def test_defaults_for_plain_page(self):
        cv = analyze_cv("<html><body><p>Hello</p></body></html>")

        assert cv.has_viewport is False
        assert cv.min_font_size == 16
        assert cv.min_touch_target == 44
        assert cv.alt_ratio == 1.0
        assert cv.popup_count == 0

    def test_tiny_sizes_are_ignored(self):
        html = '<a style="height: 10px; width: 15px">x</a><p style="font-size: 8px">x</p>'
        cv = analyze_cv(html)

        assert cv.min_touch_target == 44
        assert cv.min_font_size == 16

    def test_wide_element_overflows(self):
        html = '<div style="width: 980px">desktop layout</div>'

        assert analyze_cv(html).has_overflow is True
        assert analyze_cv(html, viewport_width=1280).has_overflow is False

    def test_max_width_is_not_overflow(self):
        assert analyze_cv('<div style="max-width: 1200px">x</div>').has_overflow is False

    def test_dialog_counted_once(self):
        html = '<div role="dialog" class="popup modal" id="popup-1">Sign up</div>'
        assert analyze_cv(html).popup_count == 1


class TestHTMLMetrics:
    def test_storefront(self):
        html = analyze_html(STOREFRONT)

        assert html.title == "Acme Shop"
        assert html.meta_description == "Home goods with free shipping"
        assert html.og_tags == 3
        assert html.h1_count == 1
        assert html.alt_ratio == pytest.approx(2 / 3)
        assert html.has_analytics is True
        assert html.menu_count == 4
        assert html.has_search is True
        assert html.min_font_size == 12

    def test_missing_tags(self):
        html = analyze_html("<html><body><h1>a</h1><h1>b</h1></body></html>")

        assert html.title is None
        assert html.meta_description is None
        assert html.og_tags == 0
        assert html.h1_count == 2
        assert html.alt_ratio == 0
        assert html.has_analytics is False
        assert html.menu_count == 0
        assert html.has_search is False

    @pytest.mark.parametrize(
        "snippet",
        [
            '<input type="text" placeholder="검색어를 입력하세요">',
            '<input type="text" placeholder="Search">',
            '<div id="search"></div>',
            '<form class="search"></form>',
        ],
    )
    def test_search_detection(self, snippet):
        assert analyze_html(snippet).has_search is True

    @pytest.mark.parametrize("marker", ["gtag('config', 'G-1')", "connect.facebook.net/en_US/fbevents.js"])
    def test_analytics_markers(self, marker):
        assert analyze_html(f"<script>{marker}</script>").has_analytics is True


@pytest.mark.parametrize("html", [None, "", "   \n"])
def test_empty_html_is_unmeasured(html):
    assert analyze_markup(html) == (None, None)


def test_analyze_markup_returns_both_records():
    cv, html = analyze_markup(STOREFRONT)

    assert cv.popup_count == 2
    assert html.menu_count == 4


def test_image_less_page_alt_ratios_differ_by_record():
    cv, html = analyze_markup("<html><body><h1>No pictures</h1></body></html>")

    assert cv.alt_ratio == 1.0
    assert html.alt_ratio == 0.0
