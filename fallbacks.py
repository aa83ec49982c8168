# fallbacks.py
# Known-good code used when a model answer cannot be recovered.
import html as html_lib

SAFE_HTML = """<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>Todo App</title>
</head>
<body>
    <div class="app-container">
        <header class="header">
            <h1 class="app-title">Todo</h1>
            <p class="app-subtitle">Simple task management</p>
        </header>
        <div class="stats-section">
            <div class="stat-card"><span class="stat-value" id="totalCount">0</span><span class="stat-label">Total</span></div>
            <div class="stat-card"><span class="stat-value" id="activeCount">0</span><span class="stat-label">Active</span></div>
            <div class="stat-card"><span class="stat-value" id="completedCount">0</span><span class="stat-label">Completed</span></div>
        </div>
        <form id="todoForm" class="todo-form">
            <input type="text" id="todoInput" aria-label="New task" placeholder="What needs to be done?" required autocomplete="off">
            <button type="submit" class="add-button">Add Task</button>
        </form>
        <div class="filter-section">
            <button class="filter-btn active" data-filter="all">All</button>
            <button class="filter-btn" data-filter="active">Active</button>
            <button class="filter-btn" data-filter="completed">Completed</button>
        </div>
        <ul id="todoList" class="todo-list"></ul>
    </div>
</body>
</html>"""

SAFE_CSS = """/* ===== Todo App Styles ===== */
:root {
  --primary-color: #6366f1;
  --success-color: #10b981;
  --danger-color: #ef4444;
  --gray-200: #e2e8f0;
  --gray-500: #64748b;
  --gray-900: #0f172a;
}

* {
  box-sizing: border-box;
  margin: 0;
  padding: 0;
}

body {
  font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif;
  color: var(--gray-900);
  background: linear-gradient(135deg, #667eea 0%, #764ba2 100%);
  min-height: 100vh;
  display: flex;
  align-items: center;
  justify-content: center;
  padding: 1.5rem;
}

.app-container {
  background: #fff;
  border-radius: 1rem;
  padding: 2rem;
  width: 100%;
  max-width: 600px;
  box-shadow: 0 20px 25px -5px rgba(0, 0, 0, 0.1);
}

.header {
  text-align: center;
  margin-bottom: 1.5rem;
}

.app-title {
  font-size: 1.875rem;
  color: var(--primary-color);
}

.app-subtitle {
  color: var(--gray-500);
}

.stats-section {
  display: grid;
  grid-template-columns: repeat(3, 1fr);
  gap: 1rem;
  margin-bottom: 1.5rem;
}

.stat-card {
  text-align: center;
  padding: 1rem;
  border: 1px solid var(--gray-200);
  border-radius: 0.75rem;
}

.stat-value {
  display: block;
  font-size: 1.5rem;
  font-weight: 700;
  color: var(--primary-color);
}

.todo-form {
  display: flex;
  gap: 1rem;
  margin-bottom: 1rem;
}

#todoInput {
  flex: 1;
  padding: 0.75rem 1rem;
  border: 2px solid var(--gray-200);
  border-radius: 0.75rem;
}

.add-button,
.filter-btn {
  padding: 0.5rem 1rem;
  border: none;
  border-radius: 0.5rem;
  cursor: pointer;
}

.add-button {
  background: var(--primary-color);
  color: #fff;
}

.filter-section {
  display: flex;
  gap: 0.5rem;
  justify-content: center;
  margin-bottom: 1rem;
}

.filter-btn.active {
  background: var(--primary-color);
  color: #fff;
}

.todo-list {
  list-style: none;
}

.todo-item {
  display: flex;
  justify-content: space-between;
  align-items: center;
  padding: 0.75rem 1rem;
  border: 1px solid var(--gray-200);
  border-radius: 0.75rem;
  margin-bottom: 0.5rem;
}

.todo-item.completed .todo-text {
  text-decoration: line-through;
  color: var(--gray-500);
}

.empty-state {
  text-align: center;
  color: var(--gray-500);
  padding: 2rem;
}

@media (max-width: 480px) {
  .stats-section {
    grid-template-columns: 1fr;
  }
  .todo-form {
    flex-direction: column;
  }
}"""

SAFE_JS = """// Todo App
class TodoApp {
  constructor() {
    this.todos = this.loadTodos();
    this.filter = 'all';
    this.bindEvents();
    this.render();
  }

  loadTodos() {
    try {
      const stored = localStorage.getItem('todos');
      return stored ? JSON.parse(stored) : [];
    } catch (e) {
      return [];
    }
  }

  saveTodos() {
    try {
      localStorage.setItem('todos', JSON.stringify(this.todos));
    } catch (e) {
      console.warn('Could not save todos', e);
    }
  }

  bindEvents() {
    const form = document.getElementById('todoForm');
    if (form) {
      form.addEventListener('submit', (e) => {
        e.preventDefault();
        this.addTodo();
      });
    }
    document.querySelectorAll('.filter-btn').forEach((btn) => {
      btn.addEventListener('click', () => this.setFilter(btn.dataset.filter));
    });
    const list = document.getElementById('todoList');
    if (list) {
      list.addEventListener('click', (e) => {
        const item = e.target.closest('[data-todo-id]');
        if (!item) return;
        const id = item.dataset.todoId;
        if (e.target.classList.contains('delete-btn')) {
          this.deleteTodo(id);
        } else if (e.target.classList.contains('toggle-btn')) {
          this.toggleTodo(id);
        }
      });
    }
  }

  addTodo() {
    const input = document.getElementById('todoInput');
    if (!input) return;
    const text = input.value.trim();
    if (!text) return;
    this.todos.unshift({ id: Date.now().toString(), text: text, completed: false });
    input.value = '';
    this.saveTodos();
    this.render();
  }

  toggleTodo(id) {
    const todo = this.todos.find((t) => t.id === id);
    if (todo) {
      todo.completed = !todo.completed;
      this.saveTodos();
      this.render();
    }
  }

  deleteTodo(id) {
    this.todos = this.todos.filter((t) => t.id !== id);
    this.saveTodos();
    this.render();
  }

  setFilter(filter) {
    this.filter = filter;
    document.querySelectorAll('.filter-btn').forEach((btn) => {
      btn.classList.toggle('active', btn.dataset.filter === filter);
    });
    this.render();
  }

  visibleTodos() {
    if (this.filter === 'active') return this.todos.filter((t) => !t.completed);
    if (this.filter === 'completed') return this.todos.filter((t) => t.completed);
    return this.todos;
  }

  escapeHtml(text) {
    const div = document.createElement('div');
    div.textContent = text;
    return div.innerHTML;
  }

  render() {
    const list = document.getElementById('todoList');
    if (!list) return;
    const todos = this.visibleTodos();
    list.innerHTML = todos.length === 0
      ? '<li class="empty-state">No tasks here yet.</li>'
      : todos.map((t) => (
          '<li class="todo-item' + (t.completed ? ' completed' : '') + '" data-todo-id="' + t.id + '">' +
          '<button class="toggle-btn" aria-label="Toggle">' + (t.completed ? '&#10003;' : '&#9675;') + '</button>' +
          '<span class="todo-text">' + this.escapeHtml(t.text) + '</span>' +
          '<button class="delete-btn" aria-label="Delete">&times;</button></li>'
        )).join('');
    const completed = this.todos.filter((t) => t.completed).length;
    const counts = { totalCount: this.todos.length, activeCount: this.todos.length - completed, completedCount: completed };
    Object.keys(counts).forEach((id) => {
      const el = document.getElementById(id);
      if (el) el.textContent = String(counts[id]);
    });
  }
}

document.addEventListener('DOMContentLoaded', function () {
  window.app = new TodoApp();
});"""

BASIC_INTERACTIONS_JS = """document.addEventListener('DOMContentLoaded', function() {
  // click feedback for every button
  document.querySelectorAll('button').forEach(function(button) {
    button.addEventListener('click', function() {
      button.style.transform = 'scale(0.95)';
      setTimeout(function() { button.style.transform = 'scale(1)'; }, 150);
    });
  });

  document.querySelectorAll('form').forEach(function(form) {
    form.addEventListener('submit', function(e) {
      e.preventDefault();
      alert('Form submitted (demo)');
    });
  });

  document.querySelectorAll('input, textarea').forEach(function(input) {
    input.addEventListener('focus', function() {
      input.style.boxShadow = '0 0 0 2px rgba(59, 130, 246, 0.5)';
    });
    input.addEventListener('blur', function() {
      input.style.boxShadow = '';
    });
  });

  document.querySelectorAll('a[href^="#"]').forEach(function(link) {
    link.addEventListener('click', function(e) {
      const targetId = (link.getAttribute('href') || '').substring(1);
      const target = targetId ? document.getElementById(targetId) : null;
      if (target) {
        e.preventDefault();
        target.scrollIntoView({ behavior: 'smooth' });
      }
    });
  });

  document.querySelectorAll('.card, [class*="card"], [class*="hover"]').forEach(function(card) {
    card.addEventListener('mouseenter', function() {
      card.style.transform = 'translateY(-2px)';
      card.style.transition = 'transform 0.2s ease';
    });
    card.addEventListener('mouseleave', function() {
      card.style.transform = 'translateY(0)';
    });
  });
});"""


def generate_safe_html() -> str:
    return SAFE_HTML


def generate_safe_css() -> str:
    return SAFE_CSS


def generate_safe_js() -> str:
    return SAFE_JS


def generate_basic_interactions() -> str:
    return BASIC_INTERACTIONS_JS


def generate_fallback_ui(prompt: str, note: str = "Generated UI placeholder") -> dict:
    safe_prompt = html_lib.escape(prompt or "Sample UI")
    return {
        "html": f"<h1>{safe_prompt}</h1><p>{note}</p>",
        "css": "body { font-family: Arial, sans-serif; }",
        "js": "",
        "description": f"Generated UI for: {prompt}",
    }
