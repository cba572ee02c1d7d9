import logging
from time import time

import click

from escapetime.buddhabrot import BuddhabrotRenderer
from escapetime.errors import EncodingError, ParseError
from escapetime.graphics import ColorPalette, DataBox, GridRenderer, save_picture
from escapetime.math.complex import Complex
from escapetime.painters import FRACTAL_LIST, build_painter
from escapetime.presets import PRESETS
from escapetime.settings import RenderSettings
from escapetime.util import parse_color, parse_list, parse_stops
from escapetime.video import AnimationRenderer

logger = logging.getLogger(__name__)


class ComplexParamType(click.ParamType):
    name = "complex"

    def convert(self, value, param, ctx):
        if isinstance(value, Complex):
            return value
        try:
            return Complex.parse(value)
        except ParseError as e:
            self.fail(str(e), param, ctx)


class ColorParamType(click.ParamType):
    name = "color"

    def convert(self, value, param, ctx):
        try:
            return parse_color(value)
        except ParseError as e:
            self.fail(str(e), param, ctx)


COMPLEX = ComplexParamType()
COLOR = ColorParamType()


VIEW_OPTIONS = [
    click.option("--preset", type=click.Choice(sorted(PRESETS.keys())), help="Start from a named view"),
    click.option("--width", "-w", type=click.IntRange(min=1), help="Image width"),
    click.option("--height", "-h", type=click.IntRange(min=1), help="Image height"),
    click.option("--max-iterations", "-n", type=click.IntRange(min=1), help="Iteration limit"),
    click.option("--power", type=COMPLEX, help='Exponent, e.g. "(2, 0)"'),
    click.option("--constant", type=COMPLEX, help="Julia constant"),
    click.option("--up-left", type=COMPLEX, help="Upper left corner of the view"),
    click.option("--down-right", type=COMPLEX, help="Lower right corner of the view"),
]

PALETTE_OPTIONS = [
    click.option("--colors", help="Comma-separated #rrggbb colors of a custom palette"),
    click.option("--stops", help="Comma-separated positions of the colors, from 0 to 1"),
    click.option("--set-color", type=COLOR, default="#000000", help="Color of points in the set"),
]


def _view_options(f):
    for option in reversed(VIEW_OPTIONS):
        f = option(f)
    return f


def _palette_options(f):
    for option in reversed(PALETTE_OPTIONS):
        f = option(f)
    return f


def _make_data_box(settings: RenderSettings, preset, width, height, max_iterations, power, constant, up_left,
                   down_right) -> DataBox:
    defaults = DataBox.create(1, 1, with_image=False)
    base = PRESETS[preset] if preset else None
    return DataBox.create(
        width or settings.width,
        height or settings.height,
        max_iterations=max_iterations or (base.max_iterations if base else settings.max_iterations),
        power=power or (base.power if base else defaults.power),
        constant=constant or (base.constant if base else defaults.constant),
        up_left=up_left or (base.up_left if base else defaults.plane.up_left),
        down_right=down_right or (base.down_right if base else defaults.plane.down_right))


def _make_palette(colors, stops, set_color, length):
    if colors is None:
        if stops is not None:
            raise click.BadParameter("--stops requires --colors", param_hint="--stops")
        return None
    try:
        color_list = [parse_color(c) for c in parse_list(colors)]
        if stops is None:
            stop_list = [i / (len(color_list) - 1) for i in range(len(color_list))] if len(color_list) > 1 else [0.0]
        else:
            stop_list = parse_stops(parse_list(stops))
        return ColorPalette.from_stops(length, color_list, stop_list, set_color)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="--colors/--stops")


def _log_progress(fraction):
    logger.debug("Progress: %.1f%%", 100 * fraction)


@click.group()
@click.option("--settings", "settings_path", type=click.Path(dir_okay=False), help="INI file with default settings")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
@click.pass_context
def main(ctx, settings_path, verbose):
    """Escape-time fractal renderer."""
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    else:
        logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
    ctx.ensure_object(dict)
    ctx.obj["settings"] = RenderSettings(settings_path)


@main.command("list")
def list_fractals():
    """Print names of supported fractals."""
    for name in FRACTAL_LIST:
        click.echo(name)


@main.command()
@click.argument("kind", type=click.Choice(FRACTAL_LIST))
@click.argument("output", type=click.Path(dir_okay=False))
@_view_options
@_palette_options
@click.pass_context
def render(ctx, kind, output, preset, width, height, max_iterations, power, constant, up_left, down_right, colors,
           stops, set_color):
    """Render fractal KIND into image file OUTPUT."""
    settings = ctx.obj["settings"]
    data_box = _make_data_box(settings, preset, width, height, max_iterations, power, constant, up_left, down_right)
    palette = _make_palette(colors, stops, set_color, data_box.max_iterations)
    painter = build_painter(kind, data_box, palette)
    time_start = time()
    GridRenderer(painter, data_box.image, max_workers=settings.worker_count, on_progress=_log_progress).render()
    save_picture(data_box.image, output)
    click.echo("Saved %s in %d ms" % (output, 1000 * (time() - time_start)))


@main.command()
@click.argument("kind", type=click.Choice(FRACTAL_LIST))
@click.argument("output", type=click.Path(dir_okay=False), required=False)
@_view_options
@_palette_options
@click.option("--frames", type=click.IntRange(min=2), help="Number of frames")
@click.option("--delay-ms", type=click.IntRange(min=1), help="Delay between frames")
@click.option("--end-power", type=COMPLEX, help="Exponent in the last frame")
@click.option("--end-constant", type=COMPLEX, help="Julia constant in the last frame")
@click.option("--end-up-left", type=COMPLEX, help="Upper left corner in the last frame")
@click.option("--end-down-right", type=COMPLEX, help="Lower right corner in the last frame")
@click.pass_context
def animate(ctx, kind, output, preset, width, height, max_iterations, power, constant, up_left, down_right, colors,
            stops, set_color, frames, delay_ms, end_power, end_constant, end_up_left, end_down_right):
    """Render animated GIF OUTPUT morphing fractal KIND between two parameter sets."""
    settings = ctx.obj["settings"]
    start = _make_data_box(settings, preset, width, height, max_iterations, power, constant, up_left, down_right)
    end = DataBox.create(start.plane.width, start.plane.height,
                         max_iterations=start.max_iterations,
                         power=end_power or start.power,
                         constant=end_constant or start.constant,
                         up_left=end_up_left or start.plane.up_left,
                         down_right=end_down_right or start.plane.down_right,
                         with_image=False)
    palette = _make_palette(colors, stops, set_color, start.max_iterations)
    output = output or settings.animation_path
    renderer = AnimationRenderer(kind, frames or settings.frame_count, start, end, palette,
                                 file_name=output,
                                 delay_ms=delay_ms or settings.frame_delay_ms,
                                 max_workers=settings.worker_count,
                                 on_progress=_log_progress)
    time_start = time()
    try:
        renderer.render()
    except EncodingError as e:
        raise click.ClickException(str(e))
    click.echo("Saved %s in %d ms" % (output, 1000 * (time() - time_start)))


@main.command()
@click.argument("output", type=click.Path(dir_okay=False))
@_view_options
@click.option("--supersampling", "-s", type=click.IntRange(min=0), help="Extra samples per pixel side")
@click.option("--color-zero", type=COLOR, default="#000000", help="Color of cells never visited")
@click.option("--color-max", type=COLOR, default="#ffffff", help="Color of the most visited cell")
@click.pass_context
def buddhabrot(ctx, output, preset, width, height, max_iterations, power, constant, up_left, down_right,
               supersampling, color_zero, color_max):
    """Render Buddhabrot into image file OUTPUT."""
    settings = ctx.obj["settings"]
    data_box = _make_data_box(settings, preset, width, height, max_iterations, power, constant, up_left, down_right)
    if supersampling is None:
        supersampling = settings.supersampling
    renderer = BuddhabrotRenderer(data_box, supersampling, color_zero, color_max,
                                  max_workers=settings.worker_count,
                                  on_progress=_log_progress)
    time_start = time()
    renderer.render()
    save_picture(renderer.image, output)
    click.echo("Saved %s in %d ms" % (output, 1000 * (time() - time_start)))


if __name__ == "__main__":
    main()
