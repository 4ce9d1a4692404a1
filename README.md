# vrshelf

Building blocks for managing a library of VR videos and their funscripts:
heatmap images, preview clips, watch-session tracking, scene-page parsing
and content bundles.

## Installation

```
pip install vrshelf
```

The test extra installs pytest: `pip install vrshelf[test]`.

## Modules

- `vrshelf.heatmap`: `load_funscript` reads a funscript with its actions
  sorted by time and raises `FunscriptError` when the action list is missing
  or empty. `Script.update_intensity` works out the slope and intensity of
  each stroke, `Script.gradient_table` turns them into a `GradientTable` of
  colours, and `render_heatmap` draws a PNG with black marks every ten
  minutes. `funscript_duration` gives a script's length in seconds.
  `Color` offers RGB, Lab and HCL blending.
- `vrshelf.thumbnail`: `compose_heatmap_thumbnail` takes JPEG bytes and a
  heatmap image and returns a 700x420 JPEG with the heatmap as a strip at the
  bottom. `load_heatmap` opens `heatmap-<file id>.png` from a directory;
  `split_request_path` and `cache_key` help in serving such thumbnails.
- `vrshelf.preview`: `build_preview_commands` returns the ffmpeg argument
  lists and concat file text for a preview made of evenly spaced snippets
  (configured through `PreviewSettings`); `render_preview` runs them with
  the ffmpeg binary you name.
- `vrshelf.remote`: the length-prefixed JSON protocol of the DeoVR remote
  (`encode_packet`, `decode_packet`, `DeoPacket`, `PlayerState`) and
  `DeoRemoteClient`, which connects to a player on port 23554, passes each
  packet to a callback and reconnects until a stop event is set.
- `vrshelf.session`: `SessionTracker` records watch sessions from file
  playback or from remote packets, ends sessions that have gone quiet
  (`check_for_dead_session`) and adds the playback heatmap of a remote
  session to `<scene id>.json` with `dump_heatmap`. Storage goes through
  the `SessionStore` protocol; `MemorySessionStore` keeps it in memory.
- `vrshelf.funscripts`: `export_funscripts` writes the first script of each
  scene to a zip archive, optionally only those not exported before, and
  returns the `ScriptEntry` objects whose export flag changed.
- `vrshelf.deps`: `ensure_tool` returns the path of ffmpeg or ffprobe in a
  directory, downloading and unpacking it from ffbinaries first when missing.
  `platform_id` names the download for an operating system and machine.
- `vrshelf.twowebmedia`: `parse_scene_page` reads a ZexyVR or WankitNowVR
  scene page into a `ScrapedScene`; `scrape_site` follows the listing pages
  and yields the scenes whose URLs are not already known.
- `vrshelf.scanner`: `walk_volume` finds video and funscript files below a
  directory, `detect_projection` guesses a video's projection from its frame
  size and name, `filename_match_candidates` gives SQL `LIKE` patterns for
  matching files to scenes, and `scene_fulltext` builds a scene's search text.
- `vrshelf.bundle`: `ContentBundle` reads and writes JSON content bundles,
  `save_bundle` stores one as `content-bundle-<unix time>.json` and
  `load_bundle` downloads one. `parse_edit` interprets a recorded scene edit
  as a `SceneEdit`; `known_scene_urls` lists scenes that need no new scrape.

## Examples

```python
from vrshelf.heatmap import render_heatmap, funscript_duration

render_heatmap("scene.funscript", "heatmap.png", 1000, 10, 250)
print(funscript_duration("scene.funscript"))
```

```python
from vrshelf.remote import DeoPacket, encode_packet, decode_packet

wire = encode_packet(DeoPacket())   # b'\x02\x00\x00\x00{}'
packet = decode_packet(wire[4:])
```

```python
from vrshelf.session import MemorySessionStore, SessionTracker

store = MemorySessionStore(scenes={1}, files={7: 1})
tracker = SessionTracker(store, "heatmaps")
tracker.track_from_file(1)
assert tracker.has_active_session()
tracker.finish_tracking_from_file()
```

## What the package does not do

There is no command, web server, image proxy or user interface. Nothing is
stored in a database: the session tracker works through a store you supply,
and the scanner and edit helpers return values for you to persist. The
package builds search text but keeps no search index, and it does not
schedule scraping or rescans.