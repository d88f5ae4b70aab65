"""JavaScript injected into the WhatsApp Web page.

``PAGE_HOOK_SCRIPT`` is installed as an init script on the browser context, so
it runs again after every navigation. It defines ``window.__wabridge`` with:

- ``probe()``: snapshot of the page (QR challenge, loading screen, chat list,
  whether the internal message store is reachable)
- ``hookStore()``: subscribes once to new messages and forwards them to the
  exposed ``wabridgeEmit`` binding as ``message_create`` / ``message``
- ``sendText(chatId, body)``: sends a text message through the web app
- ``getContact(contactId)``: contact lookup for display names
"""

EMIT_BINDING = "wabridgeEmit"

PAGE_HOOK_SCRIPT = r"""
(() => {
  if (window.__wabridge) return;

  const state = { hooked: false };

  const load = (name) => {
    try {
      return typeof window.require === 'function' ? window.require(name) : null;
    } catch (e) {
      return null;
    }
  };

  const serializeWid = (wid) => {
    if (!wid) return null;
    return wid._serialized || String(wid);
  };

  const serializeMessage = (msg) => ({
    id: msg.id ? msg.id._serialized : null,
    from: serializeWid(msg.from),
    to: serializeWid(msg.to),
    author: serializeWid(msg.author),
    body: msg.body || msg.caption || '',
    timestamp: msg.t || null,
    fromMe: !!(msg.id && msg.id.fromMe),
    hasMedia: !!(msg.mediaKey || msg.directPath),
    type: msg.type || 'chat',
  });

  const emit = (eventName, payload) => {
    const binding = window.__EMIT_BINDING__;
    if (typeof binding !== 'function') return;
    Promise.resolve(binding(eventName, payload)).catch(() => {});
  };

  const hookStore = () => {
    if (state.hooked) return true;
    const collections = load('WAWebCollections');
    if (!collections || !collections.Msg || !collections.Chat) return false;

    window.__wabridgeStore = {
      Msg: collections.Msg,
      Chat: collections.Chat,
      Contact: collections.Contact,
      widFactory: load('WAWebWidFactory'),
      sendAction: load('WAWebSendTextMsgChatAction'),
      findChat: load('WAWebFindChatAction'),
    };

    collections.Msg.on('add', (msg) => {
      if (!msg || !msg.isNewMsg) return;
      const data = serializeMessage(msg);
      if (!data.id) return;
      emit('message_create', data);
      if (!data.fromMe) emit('message', data);
    });

    state.hooked = true;
    return true;
  };

  const probe = () => {
    const qrEl = document.querySelector('div[data-ref]');
    const progress = document.querySelector('progress');
    const chatList = !!document.querySelector(
      '#pane-side, [data-testid="chat-list"], div[aria-label="Chat list"]'
    );

    let loading = null;
    if (progress) {
      const max = Number(progress.max) || 100;
      const percent = Math.max(0, Math.min(100, Math.round((Number(progress.value) || 0) * 100 / max)));
      const container = progress.parentElement && progress.parentElement.parentElement;
      const text = container ? (container.innerText || '').trim().split('\n')[0] : '';
      loading = { percent, message: text || document.title || '' };
    }

    return {
      qr: qrEl ? qrEl.getAttribute('data-ref') : null,
      loading,
      chatList,
      storeReady: chatList ? hookStore() : false,
    };
  };

  const resolveChat = async (chatId) => {
    const store = window.__wabridgeStore;
    const wid = store.widFactory.createWid(chatId);
    let chat = store.Chat.get(wid);
    if (!chat && store.findChat && store.findChat.findOrCreateLatestChat) {
      const result = await store.findChat.findOrCreateLatestChat(wid);
      chat = result && (result.chat || result);
    }
    return chat;
  };

  const sendText = async (chatId, body) => {
    if (!hookStore()) throw new Error('WhatsApp Web store is not available');
    const chat = await resolveChat(chatId);
    if (!chat) throw new Error(`Chat not found: ${chatId}`);
    await window.__wabridgeStore.sendAction.sendTextMsgToChat(chat, body);
    const last = chat.msgs && typeof chat.msgs.last === 'function' ? chat.msgs.last() : null;
    return {
      id: last && last.id ? last.id._serialized : null,
      timestamp: last ? last.t || null : null,
    };
  };

  const getContact = async (contactId) => {
    if (!hookStore()) throw new Error('WhatsApp Web store is not available');
    const store = window.__wabridgeStore;
    const wid = store.widFactory.createWid(contactId);
    let contact = store.Contact.get(wid);
    if (!contact && typeof store.Contact.find === 'function') {
      contact = await store.Contact.find(wid);
    }
    if (!contact) throw new Error(`Contact not found: ${contactId}`);
    return {
      id: serializeWid(contact.id) || contactId,
      pushname: contact.pushname || null,
      name: contact.name || null,
      number: contact.userid || (contact.id && contact.id.user) || null,
    };
  };

  window.__wabridge = { probe, hookStore, sendText, getContact };
})();
""".replace("__EMIT_BINDING__", EMIT_BINDING)

PROBE_EXPRESSION = "() => window.__wabridge ? window.__wabridge.probe() : null"

SEND_TEXT_EXPRESSION = "([chatId, body]) => window.__wabridge.sendText(chatId, body)"

GET_CONTACT_EXPRESSION = "(contactId) => window.__wabridge.getContact(contactId)"
