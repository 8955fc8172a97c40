from __future__ import annotations

from html import escape


def render_homepage(
    *,
    app_name: str,
    poll_interval_s: float,
    max_poll_anomalies: int | None = 5,
) -> str:
    interval_ms = max(1, int(poll_interval_s * 1000))
    # 0 tells the page to poll until a terminal status arrives.
    return (
        _PAGE.replace("__APP_NAME__", escape(app_name))
        .replace("__POLL_INTERVAL_MS__", str(interval_ms))
        .replace("__MAX_POLL_ANOMALIES__", str(max_poll_anomalies or 0))
    )


_PAGE = """
<!doctype html>
<html lang="en">
<head>
  <meta charset="utf-8">
  <meta name="viewport" content="width=device-width, initial-scale=1">
  <title>__APP_NAME__ Console</title>
  <style>
    :root {
      --bg: #f3efe6;
      --panel: #fffaf0;
      --ink: #112433;
      --muted: #5c6b74;
      --accent: #0f8b8d;
      --line: #d7d1c3;
      --warn: #b00020;
    }
    * { box-sizing: border-box; }
    body {
      margin: 0;
      font-family: sans-serif;
      color: var(--ink);
      background: var(--bg);
    }
    .wrap {
      max-width: 1000px;
      margin: 24px auto;
      padding: 0 16px 24px;
      display: grid;
      gap: 16px;
    }
    .card {
      background: var(--panel);
      border: 1px solid var(--line);
      border-radius: 16px;
      padding: 16px;
    }
    h1 { margin: 0; font-size: 1.8rem; }
    h2 { margin: 0 0 10px; font-size: 1.1rem; }
    .sub { margin: 6px 0 0; color: var(--muted); }
    textarea, input[type=text] {
      width: 100%;
      border: 1px solid var(--line);
      border-radius: 12px;
      padding: 10px 12px;
      font-family: monospace;
      margin-bottom: 8px;
    }
    button {
      border: none;
      border-radius: 10px;
      padding: 10px 14px;
      font-weight: 700;
      cursor: pointer;
      background: var(--accent);
      color: #fff;
    }
    pre, .history {
      margin: 10px 0 0;
      overflow: auto;
      max-height: 380px;
      background: #112433;
      color: #ebf7f7;
      border-radius: 12px;
      padding: 14px;
      font-family: monospace;
      font-size: 0.82rem;
      white-space: pre-wrap;
    }
  </style>
</head>
<body>
  <main class="wrap">
    <section class="card">
      <h1>__APP_NAME__ Console</h1>
      <p class="sub">Submit jobs and watch them finish.</p>
    </section>

    <section class="card">
      <h2>Generate</h2>
      <form id="generate-form">
        <input type="text" name="prompt" placeholder="Prompt" required>
        <button type="submit">Generate</button>
      </form>
      <pre id="generate-response">No response yet.</pre>
    </section>

    <section class="card">
      <h2>Chat</h2>
      <div class="history" id="chat-history"></div>
      <form id="chat-form">
        <input type="text" name="prompt" placeholder="Message or /help" required>
        <button type="submit">Send</button>
      </form>
    </section>

    <section class="card">
      <h2>Multimodal</h2>
      <form id="multimodal-form">
        <input type="text" name="prompt" placeholder="Prompt" required>
        <input type="file" name="image" accept="image/*" required>
        <button type="submit">Analyze</button>
      </form>
      <pre id="multimodal-response">No response yet.</pre>
    </section>

    <section class="card">
      <h2>Steganography</h2>
      <form id="steganography-form">
        <input type="text" name="prompt" placeholder="Message to hide" required>
        <input type="file" name="image" accept="image/*" required>
        <button type="submit">Encode</button>
      </form>
      <pre id="steganography-response">No response yet.</pre>
    </section>

    <section class="card">
      <h2>Summarize</h2>
      <form id="summarize-form">
        <textarea name="data" rows="6" placeholder="Text to summarize" required></textarea>
        <button type="submit">Summarize</button>
      </form>
      <pre id="summarize-response">No response yet.</pre>
    </section>
  </main>

  <script>
    const POLL_INTERVAL_MS = __POLL_INTERVAL_MS__;
    const MAX_POLL_ANOMALIES = __MAX_POLL_ANOMALIES__;

    function formatOutcome(outcome) {
      if (outcome.kind === "success") {
        return JSON.stringify(outcome.result, null, 2);
      }
      return `Error: ${outcome.error}`;
    }

    function renderSlot(element, outcome) {
      element.textContent = formatOutcome(outcome);
    }

    function appendEntry(history, speaker, text) {
      const entry = document.createElement("div");
      entry.textContent = `${speaker}: ${text}`;
      history.appendChild(entry);
    }

    function renderTranscript(history, outcome) {
      appendEntry(history, "Bot", formatOutcome(outcome));
    }

    async function submit(operation, body) {
      const response = await fetch(`/${operation}`, {
        method: "POST",
        headers: { "Content-Type": "application/json" },
        body: JSON.stringify(body),
      });
      const text = await response.text();
      if (!response.ok) {
        throw new Error(`/${operation} returned ${response.status}: ${text}`);
      }
      return JSON.parse(text);
    }

    function watch(taskID, onTerminal) {
      let stopped = false;
      let anomalies = 0;
      async function tick() {
        let task = null;
        let reason = null;
        try {
          const response = await fetch(`/task/${encodeURIComponent(taskID)}`);
          if (!response.ok) {
            throw new Error(`status ${response.status}`);
          }
          task = await response.json();
        } catch (err) {
          console.warn(`poll failed for ${taskID}`, err);
          reason = String(err.message || err);
        }
        if (task && task.status === "completed") {
          stopped = true;
          onTerminal({ kind: "success", result: task.result });
        } else if (task && task.status === "failed") {
          stopped = true;
          onTerminal({
            kind: "failure",
            error: task.error || "Task failed without an error message",
          });
        } else if (task && task.status !== "pending") {
          reason = `unrecognized status '${task.status}'`;
        }
        anomalies = reason === null ? 0 : anomalies + 1;
        if (!stopped && MAX_POLL_ANOMALIES > 0 && anomalies >= MAX_POLL_ANOMALIES) {
          stopped = true;
          onTerminal({
            kind: "failure",
            error: `Status polling failed ${anomalies} times in a row: ${reason}`,
          });
        }
        if (!stopped) {
          setTimeout(tick, POLL_INTERVAL_MS);
        }
      }
      setTimeout(tick, POLL_INTERVAL_MS);
    }

    function encode(file) {
      return new Promise((resolve, reject) => {
        const reader = new FileReader();
        reader.onload = () => resolve(String(reader.result).split(",")[1]);
        reader.onerror = () => reject(new Error("Could not read the selected file."));
        reader.readAsDataURL(file);
      });
    }

    function bindSlotForm(operation, fields) {
      const form = document.getElementById(`${operation}-form`);
      const output = document.getElementById(`${operation}-response`);
      form.addEventListener("submit", async (event) => {
        event.preventDefault();
        const formData = new FormData(form);
        try {
          const body = {};
          for (const field of fields) {
            const value = formData.get(field);
            body[field] = field === "image" ? await encode(value) : value;
          }
          const { taskID } = await submit(operation, body);
          if (!taskID) {
            throw new Error("Backend response did not include a taskID");
          }
          watch(taskID, (outcome) => renderSlot(output, outcome));
        } catch (err) {
          renderSlot(output, { kind: "failure", error: String(err.message || err) });
        }
      });
    }

    bindSlotForm("generate", ["prompt"]);
    bindSlotForm("multimodal", ["prompt", "image"]);
    bindSlotForm("steganography", ["prompt", "image"]);
    bindSlotForm("summarize", ["data"]);

    const chatForm = document.getElementById("chat-form");
    const chatHistory = document.getElementById("chat-history");
    chatForm.addEventListener("submit", async (event) => {
      event.preventDefault();
      const prompt = new FormData(chatForm).get("prompt");
      appendEntry(chatHistory, "You", prompt);
      try {
        const result = await submit("chat", { prompt });
        if (result.taskID) {
          appendEntry(chatHistory, "Bot", `Task created with ID: ${result.taskID}`);
          watch(result.taskID, (outcome) => renderTranscript(chatHistory, outcome));
        } else {
          renderTranscript(chatHistory, { kind: "success", result });
        }
      } catch (err) {
        renderTranscript(chatHistory, { kind: "failure", error: String(err.message || err) });
      }
    });
  </script>
</body>
</html>
"""
