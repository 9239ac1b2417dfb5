from forgesite.html_minifier import HtmlMinifierOptions, minify_html


def test_collapses_whitespace_between_blocks():
    html = "<div>\n  <p>Hello   world</p>\n</div>\n"
    assert minify_html(html) == "<div><p>Hello world</p></div>"


def test_space_beside_a_tag_is_dropped_outside_inline_elements():
    html = "<p>Hello <strong>bold</strong> and <em>more</em></p>"
    assert minify_html(html) == "<p>Hello<strong>bold</strong>and<em>more</em></p>"
    assert minify_html("<p>Hello <strong>world</strong></p>") == "<p>Hello<strong>world</strong></p>"


def test_space_inside_inline_elements_is_kept():
    html = "<p><a href='/x'>read  more</a> <span>a <b>b</b></span></p>"
    assert minify_html(html) == "<p><a href='/x'>read more</a><span>a <b>b</b></span></p>"


def test_doctype_and_leading_whitespace():
    html = "  <!DOCTYPE html>\n<html>\n<head>\n<title>T</title>\n</head></html>"
    assert minify_html(html) == "<!DOCTYPE html><html><head><title>T</title></head></html>"


def test_comments_removed_but_conditionals_kept():
    html = "<p>a <!-- note --> b</p><!--[if IE]><p>old</p><![endif]-->"
    assert minify_html(html) == "<p>a b</p><!--[if IE]><p>old</p><![endif]-->"

    kept = minify_html("<p>a</p><!-- keep -->", HtmlMinifierOptions(remove_comments=False))
    assert kept == "<p>a</p><!-- keep -->"


def test_preserves_pre_and_textarea():
    html = "<div>\n<pre>  line 1\n    line 2</pre>\n<textarea>\n a  b </textarea></div>"
    assert minify_html(html) == (
        "<div><pre>  line 1\n    line 2</pre><textarea>\n a  b </textarea></div>"
    )


def test_attribute_whitespace_and_quoted_values():
    html = '<a  href="/x"   title="two  words" >link</a>'
    assert minify_html(html) == '<a href="/x" title="two  words">link</a>'


def test_self_closing_and_void_elements():
    html = "<p>line<br />next</p>\n<img src='a.png'>\n<p>after</p>"
    assert minify_html(html) == "<p>line<br/>next</p><img src='a.png'><p>after</p>"


def test_inline_script_and_style_are_minified():
    html = (
        "<style>\n  a  { color : red ; }\n</style>\n"
        "<script>\n  var  a = 1; // comment\n</script>"
    )
    assert minify_html(html) == "<style>a{color:red;}</style><script>var a=1;</script>"


def test_script_content_is_not_scanned_as_html():
    html = "<script>\nif (a < b) { x = '</div>'; }\n</script><p>x</p>"
    assert minify_html(html) == "<script>if(a<b){x='</div>';}</script><p>x</p>"


def test_non_javascript_script_types_are_left_alone():
    html = '<script type="text/template">\n  <b>  hi  </b>\n</script>'
    assert minify_html(html) == '<script type="text/template"><b>  hi  </b></script>'


def test_options_disable_features():
    options = HtmlMinifierOptions(
        collapse_whitespace=False, minify_inline_css=False, minify_inline_js=False
    )
    html = "<p>a  b</p><style> a { } </style><script> x = 1 </script>"
    assert minify_html(html, options) == "<p>a  b</p><style>a { }</style><script>x = 1</script>"


def test_custom_code_minifiers_are_used():
    html = "<style>a{}</style><script>x()</script>"
    out = minify_html(html, css=lambda s: "CSS", js=lambda s: "JS")
    assert out == "<style>CSS</style><script>JS</script>"


def test_unclosed_constructs_do_not_hang():
    assert minify_html("<p>text <!-- open") == "<p>text"
    assert minify_html('<a href="x') == '<a href="x'
    assert minify_html("<script>var a") == "<script>var a"
    assert minify_html("<div") == "<div"
