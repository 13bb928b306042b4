#!/usr/bin/env python3
import argparse, logging, signal, sys, time
from config import MelodyConfig, SessionConfig, SR
from errors import ConfigurationError, DeviceUnavailable
from guide import GuidePlayer
from mic import MicrophoneSource, list_input_devices
from notifier import ArduinoNotifier, ConsoleNotifier, find_serial
from session import PerformanceSession

STOP = False
def _on_sigint(signum, frame):
    global STOP
    STOP = True

GUIDE_HORIZON_S = 600.0

def _init_logging(level: str):
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

def main(argv=None):
    ap = argparse.ArgumentParser(description="Karaoke scorer: listen to the mic, compare with the melody, score your singing.")
    ap.add_argument("--device", help="Input device index or name substring (default: system default)")
    ap.add_argument("--list-devices", action="store_true", help="Print capture devices and exit")
    ap.add_argument("--rate", type=int, help=f"Capture sample rate (default: device native, usually {SR})")
    ap.add_argument("--duration", type=float, help="Stop after this many seconds (default: until Ctrl-C)")
    ap.add_argument("--lead-in", type=float, default=0.0, help="Seconds of count-in before the melody starts")
    ap.add_argument("--no-click", action="store_true", help="Disable count-in click")
    ap.add_argument("--guide-tone", action="store_true", help="Play each expected note as a short reference tone")
    ap.add_argument("--midi-out", help="MIDI output name for guide notes (e.g., 'IAC Driver Bus 1')")
    ap.add_argument("--serial", help="Arduino serial for the score-band LED (full path or substring)")
    ap.add_argument("--baud", type=int, default=115200, help="Arduino baud (default 115200)")
    ap.add_argument("--debug", action="store_true", help="Print the pitch/volume debug snapshot")
    ap.add_argument("--log-level", default="WARNING", help="Logging level (default WARNING)")
    args = ap.parse_args(argv)

    _init_logging(args.log_level)

    if args.list_devices:
        print("Available inputs:")
        for idx, name, rate in list_input_devices():
            print(f"  {idx:3d}  {name}  ({rate} Hz)")
        return 0

    try:
        cfg = SessionConfig(melody=MelodyConfig(lead_in_s=args.lead_in))
    except ConfigurationError as e:
        print(f"Bad configuration: {e}")
        return 2

    device = int(args.device) if args.device and args.device.isdigit() else args.device
    source = MicrophoneSource(device=device, sample_rate=args.rate)

    listeners = [ConsoleNotifier(show_debug=args.debug, warmup_s=cfg.display.warmup_s)]
    if args.serial:
        port = find_serial(args.serial)
        if not port:
            print("[WARN] Serial port not found. Proceeding without Arduino.")
        else:
            listeners.append(ArduinoNotifier(port, args.baud))

    session = PerformanceSession(source, cfg, listeners=listeners)
    guide = GuidePlayer(session.melody, play_click=not args.no_click,
                        play_tone=args.guide_tone, midi_out_name=args.midi_out)

    global STOP
    STOP = False
    prev_sigint = signal.signal(signal.SIGINT, _on_sigint)
    try:
        session.start()
    except DeviceUnavailable as e:
        signal.signal(signal.SIGINT, prev_sigint)
        print(f"Microphone unavailable: {e}")
        for l in listeners: l.close()
        return 1

    guide.start(session.started_at, args.duration or GUIDE_HORIZON_S)
    print("Sing! (press Ctrl-C to stop)")
    try:
        while not STOP and session.is_scoring:
            if args.duration and session.song_time >= args.duration:
                break
            time.sleep(0.05)
    finally:
        guide.stop(); guide.join(1.0)
        stats = session.stop() or session.last_summary
        for l in listeners: l.close()
        signal.signal(signal.SIGINT, prev_sigint)

    if session.device_lost:
        print("\n[WARN] Microphone disconnected; session stopped.")
    if stats is None:
        return 1

    print("\n----- Results -----")
    rows = {
        "duration_s": stats.duration_s,
        "final_score": stats.final_score,
        "peak_score": stats.peak_score,
        "pitch_hits": stats.pitch_hits,
        "pitch_attempts": stats.pitch_attempts,
        "pitch_accuracy": stats.metrics.pitch_accuracy,
        "timing_accuracy": stats.metrics.timing_accuracy,
        "volume_consistency": stats.metrics.volume_consistency,
        "ticks": stats.ticks,
    }
    for k, v in rows.items():
        if isinstance(v, float): print(f"{k:>18s}: {v:.1f}")
        else:                    print(f"{k:>18s}: {v}")
    print(f"{'':>18s}  {session.reporter.message(stats.final_score, stats.duration_s)}")
    return 0

if __name__ == "__main__":
    sys.exit(main())
