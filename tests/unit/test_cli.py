from __future__ import annotations

import json
from unittest.mock import AsyncMock, MagicMock

from pdf_export.errors import RenderFailedError
from pdf_export.rendering.models import RenderMetadata, RenderRequest, RenderResult

PDF = b"%PDF-1.7\n%%EOF\n"


def _result() -> RenderResult:
    return RenderResult(
        pdf_bytes=PDF,
        metadata=RenderMetadata(
            duration_ms=42, retries=1, attempts=2, page_title="Invoice", byte_size=len(PDF)
        ),
    )


def _patch_pipeline(monkeypatch, render_mock: AsyncMock) -> MagicMock:
    detect = MagicMock(return_value="profile")
    monkeypatch.setattr("pdf_export.rendering.service.detect_profile", detect)
    monkeypatch.setattr("pdf_export.rendering.service.render_pdf", render_mock)
    return detect


def test_cli_without_mode_prints_help() -> None:
    from pdf_export.__main__ import main

    assert main([]) == 0


def test_cli_html_mode_writes_pdf(monkeypatch, tmp_path, capsys) -> None:
    from pdf_export.__main__ import main

    source = tmp_path / "invoice.html"
    source.write_text("<h1>Invoice</h1>", encoding="utf-8")
    output = tmp_path / "out" / "invoice.pdf"

    render = AsyncMock(return_value=_result())
    detect = _patch_pipeline(monkeypatch, render)

    exit_code = main(["html", str(source), "-o", str(output), "--landscape"])

    assert exit_code == 0
    assert output.read_bytes() == PDF
    request: RenderRequest = render.await_args.args[0]
    assert request.html == "<h1>Invoice</h1>"
    assert request.print_options.landscape is True
    assert request.enable_retry is True
    assert render.await_args.kwargs["profile"] == "profile"
    detect.assert_called_once_with(force_constrained=None)

    out = capsys.readouterr().out
    assert "Retries: 1" in out
    assert "Title: Invoice" in out


def test_cli_url_mode_passes_retry_flags(monkeypatch, tmp_path) -> None:
    from pdf_export.__main__ import main

    render = AsyncMock(return_value=_result())
    detect = _patch_pipeline(monkeypatch, render)

    exit_code = main(
        [
            "--force-constrained",
            "url",
            "https://example.com/report",
            "-o",
            str(tmp_path / "report.pdf"),
            "--no-retry",
            "--timeout-ms",
            "5000",
            "--format",
            "Letter",
        ]
    )

    assert exit_code == 0
    request: RenderRequest = render.await_args.args[0]
    assert request.url == "https://example.com/report"
    assert request.enable_retry is False
    assert request.timeout_ms == 5000
    assert request.print_options.format == "Letter"
    detect.assert_called_once_with(force_constrained=True)


def test_cli_missing_html_file_errors_cleanly(tmp_path) -> None:
    from pdf_export.__main__ import main

    assert main(["html", str(tmp_path / "missing.html")]) == 1


def test_cli_render_failure_returns_error(monkeypatch, tmp_path, capsys) -> None:
    from pdf_export.__main__ import main

    render = AsyncMock(side_effect=RenderFailedError(3, 900))
    _patch_pipeline(monkeypatch, render)
    output = tmp_path / "never.pdf"

    exit_code = main(["url", "https://example.com", "-o", str(output)])

    assert exit_code == 1
    assert not output.exists()
    assert "after 3 attempts" in capsys.readouterr().err


def test_cli_check_reports_browser(monkeypatch, capsys) -> None:
    from pdf_export.__main__ import main

    profile = MagicMock()
    profile.describe.return_value = {"is_constrained": True}
    session = MagicMock()
    session.browser_version = "121.0.6167.57"
    session.launch_args.return_value = ["--disable-gpu"]
    session.release = AsyncMock()

    monkeypatch.setattr(
        "pdf_export.rendering.service.detect_profile", MagicMock(return_value=profile)
    )
    monkeypatch.setattr(
        "pdf_export.rendering.service.get_browser", AsyncMock(return_value=session)
    )

    assert main(["check"]) == 0

    report = json.loads(capsys.readouterr().out)
    assert report["browser_version"] == "121.0.6167.57"
    assert report["is_constrained"] is True
    session.release.assert_awaited_once()


def test_cli_unwritable_output_errors_cleanly(monkeypatch, tmp_path, capsys) -> None:
    from pdf_export.__main__ import main

    blocker = tmp_path / "not-a-dir"
    blocker.write_text("", encoding="utf-8")
    render = AsyncMock(return_value=_result())
    _patch_pipeline(monkeypatch, render)

    exit_code = main(["url", "https://example.com", "-o", str(blocker / "out.pdf")])

    assert exit_code == 1
    render.assert_awaited_once()
    assert "cannot write" in capsys.readouterr().err
