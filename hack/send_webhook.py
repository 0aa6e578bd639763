"""Webhook 送信スクリプト。

/health と /status を確認し、Zapier 形式のサンプルメッセージを webhook に
POST する開発・テスト用スクリプト。
"""

import argparse
import http.client
import json
import sys
import time

SAMPLE_PAYLOAD = {
    "channel": {"id": "C07976L66R4", "name": "general"},
    "user": {
        "id": "U079DR500BC",
        "name": "testuser",
        "real_name": "Test User",
        "is_bot": False,
    },
    "ts": "1716920000.000100",
    "text": "Can you help with the API docs?",
    "permalink": "https://example.slack.com/archives/C07976L66R4/p1716920000000100",
    "raw_text": "Can you help with the API docs?",
    "team": {"id": "T000000", "name": "Example"},
}


def create_parser() -> argparse.ArgumentParser:
    """コマンドライン引数パーサーを作成する。"""
    parser = argparse.ArgumentParser(
        description="サンプルメッセージを webhook サーバーに送信する",
    )
    parser.add_argument(
        "-H",
        "--host",
        default="localhost",
        help="サーバーホスト (デフォルト: localhost)",
    )
    parser.add_argument(
        "-p",
        "--port",
        type=int,
        default=8080,
        help="サーバーポート (デフォルト: 8080)",
    )
    parser.add_argument(
        "-w",
        "--webhook-path",
        default="zapier-webhook",
        help="webhook のパス (デフォルト: zapier-webhook)",
    )
    parser.add_argument(
        "-t",
        "--text",
        default=SAMPLE_PAYLOAD["text"],
        help="送信するメッセージ本文",
    )
    parser.add_argument(
        "-n",
        "--count",
        type=int,
        default=1,
        help="送信回数 (デフォルト: 1)",
    )
    parser.add_argument(
        "-i",
        "--interval",
        type=float,
        default=0.0,
        help="送信間隔（秒） (デフォルト: 0.0)",
    )
    parser.add_argument(
        "--skip-checks",
        action="store_true",
        help="/health と /status の確認を省略する",
    )
    return parser


def request(
    host: str, port: int, method: str, path: str, body: dict | None = None
) -> tuple[int, str]:
    """HTTP リクエストを送信する。

    Returns:
        (ステータスコード, レスポンス本文) のタプル

    Raises:
        OSError: 接続に失敗した場合
    """
    conn = http.client.HTTPConnection(host, port, timeout=30)
    try:
        headers = {"Content-Type": "application/json"} if body is not None else {}
        conn.request(
            method,
            path,
            body=json.dumps(body) if body is not None else None,
            headers=headers,
        )
        response = conn.getresponse()
        return response.status, response.read().decode("utf-8")
    finally:
        conn.close()


def check(host: str, port: int, path: str) -> bool:
    """GET エンドポイントを確認し、結果を表示する。"""
    try:
        status, body = request(host, port, "GET", path)
    except OSError as e:
        print(f"{path}: {e}")
        return False
    print(f"{path}: {status} {body}")
    return status == 200


def send_message(
    host: str, port: int, webhook_path: str, text: str
) -> tuple[bool, str]:
    """サンプルメッセージを webhook に送信する。

    Returns:
        (成功フラグ, message_id またはエラーメッセージ) のタプル
    """
    payload = dict(SAMPLE_PAYLOAD, text=text, raw_text=text, ts=f"{time.time():.6f}")
    try:
        status, body = request(host, port, "POST", f"/{webhook_path}", payload)
    except ConnectionRefusedError:
        return False, "Connection refused"
    except TimeoutError:
        return False, "Connection timeout"
    except OSError as e:
        return False, str(e)

    if status != 200:
        return False, f"{status} {body}"
    try:
        return True, json.loads(body).get("message_id", "unknown")
    except json.JSONDecodeError:
        return False, f"Invalid JSON response: {body}"


def main() -> int:
    """メインエントリーポイント。"""
    parser = create_parser()
    args = parser.parse_args()

    if not args.skip_checks:
        if not check(args.host, args.port, "/health"):
            return 1
        check(args.host, args.port, "/status")

    url = f"http://{args.host}:{args.port}/{args.webhook_path}"
    print(f"Sending message to {url}...")

    for i in range(args.count):
        if i > 0 and args.interval > 0:
            time.sleep(args.interval)

        success, message = send_message(
            args.host, args.port, args.webhook_path, args.text
        )
        if success:
            print(f"[{i + 1}/{args.count}] Message ID: {message}")
        else:
            print(f"Error: {message}")
            return 1

    print("Done.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
