"""生成合成翻书视频，便于手动跑通 preview/convert。

用法: python scripts/make_synthetic_book.py --pages 6 --output workspace/videos/synthetic_book.mp4
"""

from __future__ import annotations

from pathlib import Path

import cv2
import numpy as np
import typer

app = typer.Typer(add_completion=False)


def render_page(number: int, width: int, height: int) -> np.ndarray:
    """白底随机文字块 + 底部页码，每页纹理不同。"""

    rng = np.random.default_rng(number)
    page = np.full((height, width, 3), 235, dtype=np.uint8)
    margin = width // 10
    y = margin
    while y < height - 3 * margin:
        line_w = int(rng.integers(width // 3, width - 2 * margin))
        cv2.rectangle(page, (margin, y), (margin + line_w, y + 8), (40, 40, 40), -1)
        y += int(rng.integers(18, 30))
    cv2.putText(
        page,
        str(number),
        (width // 2 - 15, height - margin // 2),
        cv2.FONT_HERSHEY_SIMPLEX,
        1.0,
        (20, 20, 20),
        2,
    )
    return page


def turn_frames(current: np.ndarray, following: np.ndarray, steps: int) -> list[np.ndarray]:
    # 翻页过渡：新页从右向左覆盖，带一道阴影
    width = current.shape[1]
    frames = []
    for step in range(1, steps + 1):
        edge = width - int(width * step / steps)
        frame = current.copy()
        frame[:, edge:] = following[:, edge:]
        cv2.line(frame, (edge, 0), (edge, frame.shape[0]), (90, 90, 90), 6)
        frames.append(frame)
    return frames


@app.command()
def main(
    output: Path = typer.Option(Path("workspace/videos/synthetic_book.mp4"), "--output", "-o"),
    pages: int = typer.Option(6, min=1),
    hold_sec: float = typer.Option(1.5, help="每页静止时长"),
    turn_sec: float = typer.Option(0.4, help="翻页过渡时长"),
    fps: float = typer.Option(30.0),
    width: int = typer.Option(640),
    height: int = typer.Option(900),
    repeat_page: int = typer.Option(0, help="在该页之后再次展示它，用于验证去重；0 表示不重复"),
) -> None:
    output.parent.mkdir(parents=True, exist_ok=True)
    writer = cv2.VideoWriter(str(output), cv2.VideoWriter_fourcc(*"mp4v"), fps, (width, height))
    if not writer.isOpened():
        raise typer.BadParameter(f"无法写入 {output}")

    order = list(range(1, pages + 1))
    if 0 < repeat_page <= pages:
        order.insert(order.index(repeat_page) + 1, repeat_page)

    hold = max(int(round(hold_sec * fps)), 1)
    turn = max(int(round(turn_sec * fps)), 1)
    rendered = {n: render_page(n, width, height) for n in set(order)}
    try:
        for pos, number in enumerate(order):
            for _ in range(hold):
                writer.write(rendered[number])
            if pos + 1 < len(order):
                for frame in turn_frames(rendered[number], rendered[order[pos + 1]], turn):
                    writer.write(frame)
    finally:
        writer.release()
    typer.echo(f"Created {output} ({len(order)} pages shown, {fps:.0f} fps)")


if __name__ == "__main__":
    app()
