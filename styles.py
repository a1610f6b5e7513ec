DASHBOARD_CSS = """
:root {
  color-scheme: light;
  --bg: #f6f7f9;
  --bg-2: #dbe7ff;
  --bg-3: #f1f4fb;
  --glass: rgba(255, 255, 255, 0.78);
  --glass-2: rgba(255, 255, 255, 0.55);
  --border: rgba(15, 23, 42, 0.08);
  --text: #0b1220;
  --muted: #56627a;
  --danger: #dc2626;
  --shadow: 0 18px 44px rgba(10, 20, 45, 0.12);
  --shadow-soft: 0 8px 20px rgba(10, 20, 45, 0.10);
  --blur: 22px;
  --radius: 18px;
  --accent: #111111;
}

@media (prefers-color-scheme: dark) {
  :root {
    color-scheme: dark;
    --bg: #0b1022;
    --bg-2: #111f3d;
    --bg-3: #0b142b;
    --glass: rgba(12, 18, 34, 0.72);
    --glass-2: rgba(12, 18, 34, 0.5);
    --border: rgba(255, 255, 255, 0.12);
    --text: #ecf2ff;
    --muted: #a7b6d3;
    --shadow: 0 22px 60px rgba(0, 0, 0, 0.45);
    --shadow-soft: 0 10px 28px rgba(0, 0, 0, 0.3);
    --accent: #ecf2ff;
  }
}

* { box-sizing: border-box; }

body {
  margin: 0;
  font-family: system-ui, "Noto Sans TC", "Helvetica Neue", "Segoe UI", sans-serif;
  color: var(--text);
  background: linear-gradient(160deg, var(--bg-2) 0%, var(--bg) 45%, var(--bg-3) 100%);
  min-height: 100vh;
}

.page {
  max-width: 1180px;
  margin: 0 auto;
  padding: 22px 22px 80px;
  display: grid;
  gap: 16px;
}

.glass-surface {
  background: linear-gradient(135deg, var(--glass), var(--glass-2));
  border: 1px solid var(--border);
  border-radius: var(--radius);
  box-shadow: var(--shadow);
  backdrop-filter: blur(var(--blur)) saturate(160%);
  -webkit-backdrop-filter: blur(var(--blur)) saturate(160%);
}

.card { padding: 18px; }

.layout {
  display: grid;
  grid-template-columns: 360px 1fr;
  gap: 16px;
  align-items: start;
}

.header {
  display: flex;
  justify-content: space-between;
  align-items: flex-start;
  gap: 16px;
  flex-wrap: wrap;
}

.title { font-size: 40px; font-weight: 900; letter-spacing: -0.02em; }

h2 { font-size: 20px; font-weight: 900; margin: 0 0 4px; }
h3 { font-size: 15px; font-weight: 800; margin: 0; }

.meta { color: var(--muted); font-size: 13px; }

.row { display: flex; align-items: center; gap: 10px; }
.row-between { display: flex; align-items: center; justify-content: space-between; gap: 10px; }
.stack { display: flex; flex-direction: column; gap: 10px; }

.pill {
  display: inline-flex;
  align-items: center;
  gap: 6px;
  border: 1px solid var(--border);
  border-radius: 999px;
  padding: 6px 12px;
  font-size: 13px;
  background: var(--glass);
}

.pill-danger { color: #fff; background: var(--danger); border-color: transparent; }
.pill-muted { color: var(--muted); }

.btn {
  border: 1px solid var(--border);
  border-radius: 12px;
  padding: 8px 12px;
  background: var(--glass);
  color: var(--text);
  cursor: pointer;
  font-size: 14px;
  text-decoration: none;
}

.btn.primary { background: var(--accent); color: var(--bg); font-weight: 900; border-color: var(--accent); }
.btn.small { padding: 4px 8px; font-size: 12px; }
.btn:disabled { opacity: 0.5; cursor: default; }

.input {
  padding: 10px 12px;
  border-radius: 12px;
  border: 1px solid var(--border);
  background: var(--glass);
  color: var(--text);
  font-size: 14px;
  min-width: 0;
}

.dot {
  display: inline-block;
  width: 12px;
  height: 12px;
  border-radius: 999px;
  flex: none;
}

.dot.small { width: 8px; height: 8px; }

.handle { cursor: grab; border: none; padding: 0; }

.calendar {
  display: grid;
  grid-template-columns: repeat(7, 1fr);
  gap: 6px;
  margin-top: 10px;
}

.calendar-head { text-align: center; font-size: 11px; color: var(--muted); }

.day {
  border: 1px solid var(--border);
  border-radius: 12px;
  min-height: 54px;
  padding: 6px;
  background: var(--glass);
}

.day.blank { background: transparent; border-style: dashed; opacity: 0.4; }
.day.today { border-color: var(--accent); }
.day-number { font-weight: 900; font-size: 12px; }
.markers { display: flex; flex-wrap: wrap; gap: 3px; margin-top: 4px; }
.more { font-size: 10px; color: var(--muted); }

.project {
  border: 1px solid var(--border);
  border-radius: 16px;
  padding: 14px;
  background: var(--glass);
}

.task {
  border: 1px solid var(--border);
  border-radius: 14px;
  padding: 10px 12px;
  background: var(--glass-2);
}

.task.done .task-title { text-decoration: line-through; opacity: 0.6; }
.task-title { font-weight: 800; }

.task-form {
  display: grid;
  grid-template-columns: 1fr 150px 150px auto;
  gap: 8px;
  margin-top: 10px;
}

.digest-row { border-bottom: 1px solid var(--border); padding: 8px 0; }
.digest-row:last-child { border-bottom: none; }

.modal {
  position: fixed;
  inset: 0;
  display: grid;
  place-items: center;
  background: rgba(10, 16, 30, 0.45);
  z-index: 50;
}

.modal-card { padding: 20px; width: min(440px, 92vw); display: grid; gap: 14px; }
.modal-actions { display: flex; gap: 8px; justify-content: flex-end; }

@media (max-width: 860px) {
  .layout { grid-template-columns: 1fr; }
  .task-form { grid-template-columns: 1fr 1fr; }
  .title { font-size: 28px; }
}
"""
