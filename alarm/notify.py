"""Desktop notifications using notify-send."""

import subprocess

APP_NAME = "Math Alarm"


def show_notification(text: str, title: str = APP_NAME) -> bool:
    """
    Show a desktop notification.

    Returns True if successful, False otherwise.
    """
    try:
        result = subprocess.run(
            ["notify-send", "--urgency=critical", f"--app-name={APP_NAME}", title, text],
            capture_output=True,
            timeout=5
        )
        if result.returncode == 0:
            return True
        else:
            print(f"[Notify] Failed to show notification: {result.stderr.decode()}")
            return False
    except FileNotFoundError:
        print("[Notify] Error: notify-send not installed. Run: sudo apt install libnotify-bin")
        return False
    except Exception as e:
        print(f"[Notify] Error showing notification: {e}")
        return False
