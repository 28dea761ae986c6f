"""Word lists used when mining ad copy for niche keywords.

Everything is lower-case. ``STOP_WORDS`` are plain German/English function and
filler words; ``GENERIC_AD_WORDS`` are marketing terms that show up in nearly
every ad regardless of the product.
"""

from __future__ import annotations

GERMAN_STOP_WORDS = frozenset(
    """
    der die das den dem des ein eine einer eines einem einen
    und oder aber doch noch auch nur schon sehr mehr als
    ich du er sie es wir ihr sich mich dich uns euch mir dir ihm mein dein sein unser euer ihrer
    ist sind war waren wird werden hat haben hatte hatten
    kann können soll sollen will wollen muss müssen darf dürfen
    mit von aus bei nach für auf über unter vor hinter zwischen neben ohne gegen durch bis seit während wegen
    nicht kein keine keinen keinem keiner nichts nie niemals
    wenn dann weil dass damit obwohl bevor nachdem
    wo wie was wer wann warum welche welcher welches
    hier dort da jetzt heute morgen gestern immer oft mal
    so denn also zum zur am im vom beim ins
    alle alles jede jeder jedes jeden jedem
    diese dieser dieses diesen diesem
    andere anderer anderes anderen anderem
    ganz viel viele vielen vieler wenig wenige
    neue neuen neuer neues neuem erste ersten erster erstes erstem
    gute guten guter gutes gutem gut besser beste besten
    große großen großer großes großem kleine kleinen kleiner kleines kleinem
    eigene eigenen eigener eigenes
    deine deinen deiner deines deinem ihre ihren ihrem ihres
    unsere unseren unserem unseres
    einfach schnell direkt sofort
    richtig wissen weiß kennen machen macht gehen geht kommen kommt sagen sagt
    geben gibt nehmen nimmt stehen steht lassen lässt finden findet bleiben bleibt
    liegen liegt bringen bringt leben lebt fahren fährt meinen meint fragen fragt
    kennt stellt zeigt führt sprechen spricht halten hält spielen spielt
    arbeiten brauchen braucht folgen lernen bestehen verstehen setzen bekommen
    beginnen erzählen versuchen schreiben laufen erklären entsprechen sitzen ziehen
    scheinen fallen gehören entstehen erhalten treffen suchen legen vorstellen
    handeln erreichen tragen schaffen lesen verlieren darstellen erkennen entwickeln
    reden aussehen erscheinen bilden anfangen erwarten
    lang lange langen kurz kurze kurzen hoch hohe hohen tief tiefe tiefen
    alt alte alten jung junge jungen schwer schwere schweren leicht leichte leichten
    stark starke starken schwach schwache schwachen
    richtige richtigen gleich gleichen gleiche
    wirklich endlich natürlich genau bereits
    frustrierend möglich wichtig nötig fertig
    jahr jahre jahren monat monate monaten woche wochen tag stunde stunden minute minuten
    anfang ende zeit zeiten start startet neujahr neujahrs vorsatz vorsätze
    weg teil seite art fall grund ziel sache stelle punkt bild wort hand
    mensch menschen leute frau frauen mann männer kind kinder welt land stadt haus
    problem probleme frage antwort lösung prozent nummer million milliarden
    etwas kannst könnte könnten sollte sollten
    """.split()
)

ENGLISH_STOP_WORDS = frozenset(
    """
    the a an is are was were be been being
    have has had do does did will would could should may might can shall must need
    and but or nor not so yet both either neither
    in on at to for of with by from as into through during before after above below between under
    i you he she it we they me him her us them my your his its our their
    this that these those what which who whom
    here there where when why how all each every
    no any some such than too very just only own same also other new now get got
    like know think want make take come look give find tell said says call keep help show turn
    move live feel seem left hand high last long much most many even back then next
    well still down over time year made work part real life love goes went seen came
    used going first world right place thing never always again about while since found start point story
    eyes face head body skin hair hands feet lips neck arms legs bone bones nail nails
    demi rhea kate emma anna lisa sara jane rose mary john mark paul mike alex jade lily ruby
    maya lena nina nora mila luna ella aria isla
    best better great good amazing awesome beautiful perfect wonderful incredible fantastic
    natural pure true full open sure whole clear able free deep easy hard fast slow warm cold
    rich fresh clean safe dark fine soft wild rare calm
    way day man woman people child water food home house money power level night light
    morning dream family heart mind friend health beauty nature magic secret gift game play
    book page word name number group side room
    """.split()
)

STOP_WORDS = GERMAN_STOP_WORDS | ENGLISH_STOP_WORDS

GENERIC_AD_WORDS = frozenset(
    """
    http https www com
    jetzt hier klicken angebot aktion rabatt prozent gratis kostenlos versandkostenfrei
    lieferung versand bestellen kaufen shoppen sichern entdecken erfahren verfügbar limitiert
    exklusiv premium original euro preis sparen günstiger reduziert sale code gutschein link
    bio profil seite website facebook instagram shop online bestell lieferbar erfahre mehr
    info information informationen deutschland österreich schweiz berlin münchen
    tage wochen monate jahre stunden minuten über unsere unser deine dein ihre
    sicher sichere sicherer sicheres entdecke entdeckt erfahr
    glücklich glückliche glücklichen glücklicher kunden kunde kundin kundinnen
    ergebnis ergebnisse ergebnissen bewertung bewertungen rezension rezensionen
    qualität garantie zufrieden zufriedenheit wirkung wirkungen effekt effekte
    anwendung einnahme dosierung empfehlung alternative alternativen variante varianten
    hergestellt produziert entwickelt getestet verpackung lieferzeit bestellung paket
    vorteile vorteil nachteil nachteile dankbar begeistert überzeugt empfohlen
    bestätigt verifiziert zertifiziert deshalb deswegen darum daher trotzdem dennoch
    starten gestartet beginnt begonnen perfekt perfekte perfekten perfekter
    unterstützung unterstützen unterstützt genial geniale genialen fantastisch fantastische
    wissenschaftlich nachgewiesen belegt studien millionen tausende hunderte
    gescheitert geschafft erreicht gelöst verändert dafür dagegen davon daran darauf dabei
    oberste obersten oberster höchste höchsten priorität prioritäten hauptsache fokus
    neujahrs-sale weihnachts oster sommer zufriedene begeisterte überzeugte
    zusammen gemeinsam komplett komplette kompletten täglich monatlich wöchentlich regelmäßig
    sogar inzwischen mittlerweile endgültig verdient gesamte gesamten gesamter gesamtes
    vorrat vorräte geschenk geschenke premium-produkte premium-qualität premium-produkt
    besondere besonderen besonderer besonderes unglaublich unglaubliche unglaublichen
    passiert aufgehört angefangen tatsächlich eigentlich normalerweise grundsätzlich
    produkte produkt nahrungsergänzung nahrungsergänzungsmittel supplement supplements
    kapseln tabletten pulver zutat zutaten inhaltsstoffe inhaltsstoff
    spitzenpreis spitzenpreise endet enden endete beendet beenden wenigen weniger tagen tages
    starte startest nutze nutzen nutzt genutzt erlebe erleben erlebt lerne lernt gelernt
    teste testen testet spare spart gespart warte warten wartet helfen hilft geholfen
    leiden leidet wirkt wirken zeigen gezeigt bieten bietet geboten
    betroffen betroffene betroffenen überzeugen versprochen versprechen verspricht
    empfehlen empfiehlt holen holst holt geholt
    garantiert geprüft bewährt beliebt bekannt revolutionär revolutionäre einzigartig einzigartige
    natürliche natürlichen natürlicher natürliches wirkungsvolle wirkungsvoll
    positive positiven negative negativen häufig häufige häufigen häufiger
    einfache einfachen einfacher schnelle schnellen schneller
    gesund gesunde gesunden gesunder gesundheit gesundheitlich wohlbefinden körper körpers
    wahre wahren sofortige sofortigen verändern veränderung veränderungen
    verbessern verbessert verbesserung erfahrung erfahrungen lösung lösungen
    bestellbar bestellungen gesichert begrenzt begrenzte vertrauen vertraut
    zurück rückgabe risiko risikofrei unzufrieden wunder wunderbar wunderbare
    lager lagerbestand vorrätig ausverkauft nachfrage bedarf
    sonderangebot sonderaktion sonderpreis neuheit neuheiten neuartig
    beweis beweise bewiesen geheim geheimnis trick tricks tipps
    gefühl gefühle innen innere inneren wieder plus minus balance routine routinen
    gleichgewicht wirksamkeit vitamin vitamine zustand kraft energie schönheit
    pflege pflegen haut haare nägel haar anti-aging anti aging strahlend strahlende
    fühlen fühlt gefühlt aussieht wohlfühlen
    collections collection trotz aktive aktiven allein alleine bundles bundle kombination
    calcium magnesium zink eisen selen darm verdauung müde müdigkeit
    schlaf schlafen stress entspannung immunsystem stoffwechsel abnehmen gewicht
    symptome beschwerden studie forschung wirkstoff wirkstoffe
    vorverkauf mengenrabatt rabattcode gutscheincode angebote aktionen
    click buy order now today shipping discount offer deal save price limited
    exclusive authentic learn more discover explore check out available delivery
    simple customers customer review reviews rated
    """.split()
)
