import matplotlib.pyplot as plt

from appliedstats import plotting
from appliedstats.report import build_pdf, figure_size


def _figure(path):
    fig, ax = plt.subplots(figsize=(8, 4))
    ax.plot([0, 1], [0, 1])
    return plotting.savefig(fig, path)


def test_figure_size_keeps_aspect(tmp_path):
    png = _figure(tmp_path / "wide.png")
    w, h = figure_size(png, 400, 1000)
    assert w == 400
    assert 150 < h < 250

    w, h = figure_size(png, 400, 100)
    assert h == 100 and w < 400


def test_build_pdf_writes_file(tmp_path):
    png = _figure(tmp_path / "fig.png")
    sections = [
        ("Section 1: A & B <test>\n\n  y = a + b x\n", png),
        ("Section 2: text only\nno figure here", None),
    ]
    out = build_pdf(sections, tmp_path / "report.pdf", "Primer",
                    subtitle="subtitle", summary="Summary\nline")
    data = out.read_bytes()
    assert data.startswith(b"%PDF")
    assert len(data) > 1000
