import base64
from io import BytesIO
from pathlib import Path

import pytest
from PIL import Image

from utils.qr_codec import PaymentInputError
from utils.qr_generator import (
    QRCodeImage,
    QRGenerationError,
    QRRenderOptions,
    generate_payment_qr,
    generate_qr,
)
from utils.qr_schema import Payment

WALLET = "0x" + "1234567890" * 4


class FakeClipboard:
    def __init__(self):
        self.text = None

    def write_text(self, text: str) -> None:
        self.text = text


def test_generate_qr_returns_png_data_url():
    result = generate_qr("https://pianostyle.app/venues/blue-note", QRRenderOptions(size=240))
    assert result.ok
    assert result.data_url.startswith("data:image/png;base64,")
    img = Image.open(BytesIO(base64.b64decode(result.data_url.split(",", 1)[1])))
    assert img.size == (240, 240)


def test_generate_qr_empty_input():
    result = generate_qr("")
    assert not result.ok
    assert result.error == QRGenerationError.EMPTY_INPUT
    assert result.data_url == ""


@pytest.mark.parametrize(
    "options",
    [
        QRRenderOptions(size=0),
        QRRenderOptions(error_correction="X"),
        QRRenderOptions(dark_color="not-a-color"),
        QRRenderOptions(module_style="hexagon"),
    ],
)
def test_generate_qr_invalid_options(options):
    result = generate_qr("data", options)
    assert result.error == QRGenerationError.INVALID_OPTIONS


def test_generate_qr_data_too_large():
    result = generate_qr("x" * 5000, QRRenderOptions(error_correction="H"))
    assert result.error == QRGenerationError.ENCODING_FAILURE


def test_generate_payment_qr_defaults_to_level_h():
    uri, result = generate_payment_qr(Payment(address=WALLET, amount="1"))
    assert uri.startswith("celo:pay?address=")
    assert result.ok
    assert result.options.error_correction == "H"


def test_generate_payment_qr_raises_on_bad_address():
    with pytest.raises(PaymentInputError):
        generate_payment_qr({"address": "nope"})


def test_component_rerenders_when_any_input_changes():
    image = QRCodeImage("first")
    first = image.render()
    assert image.render() is first

    second = image.update(dark_color="#1e3a8a")
    assert second is not first
    assert second.options.dark_color == "#1e3a8a"

    third = image.update("second")
    assert third.data == "second"
    assert third.png_bytes != second.png_bytes


def test_copy_copies_source_string_and_fires_callback():
    copied = []
    clipboard = FakeClipboard()
    image = QRCodeImage("celo:pay?address=x", on_copy=lambda: copied.append(True))
    assert image.copy(clipboard) is True
    assert clipboard.text == "celo:pay?address=x"
    assert copied == [True]


def test_disabled_actions_are_noops(tmp_path: Path):
    clipboard = FakeClipboard()
    image = QRCodeImage("data", show_copy_button=False, allow_download=False)
    assert image.copy(clipboard) is False
    assert clipboard.text is None
    assert image.download(tmp_path) is None
    assert list(tmp_path.iterdir()) == []


def test_download_writes_png(tmp_path: Path):
    downloads = []
    image = QRCodeImage(
        "data",
        allow_download=True,
        download_filename="venue-card",
        on_download=lambda: downloads.append(True),
    )
    path = image.download(tmp_path)
    assert path == tmp_path / "venue-card.png"
    assert path.read_bytes().startswith(b"\x89PNG")
    assert downloads == [True]
